"""
Gateway factory for creating payment gateway instances.

Gateways are created per processor configuration instead of being cached in
a process-wide singleton, so live and test processors can coexist.
"""

import structlog

from contribution_gateway.config import ProcessorConfig
from contribution_gateway.gateway.base import PaymentGateway
from contribution_gateway.gateway.mock_gateway import MockGateway
from contribution_gateway.gateway.stripe_gateway import StripeGateway

logger = structlog.get_logger(__name__)


class GatewayFactory:
    """
    Factory for creating payment gateway instances.

    Supports configuration-based gateway selection and registration of
    additional gateways at runtime.
    """

    # Registry of available gateways
    _GATEWAYS: dict[str, type[PaymentGateway]] = {
        "stripe": StripeGateway,
        "mock": MockGateway,
    }

    @classmethod
    def create_gateway(cls, config: ProcessorConfig) -> PaymentGateway:
        """
        Create a payment gateway instance for a processor config.

        Args:
            config: Processor configuration; ``config.name`` selects the gateway

        Returns:
            PaymentGateway instance ready for use

        Raises:
            ValueError: If ``config.name`` is not registered

        Examples:
            gateway = GatewayFactory.create_gateway(
                ProcessorConfig(name="stripe", secret_key="sk_test_...")
            )
        """
        gateway_name = config.name.lower()

        if gateway_name not in cls._GATEWAYS:
            available = ", ".join(cls._GATEWAYS.keys())
            raise ValueError(
                f"Unknown gateway: {config.name}. "
                f"Available gateways: {available}"
            )

        gateway_class = cls._GATEWAYS[gateway_name]

        logger.info(
            "gateway_created",
            gateway_name=gateway_name,
            gateway_class=gateway_class.__name__,
            is_live=config.is_live,
        )

        if gateway_class is StripeGateway:
            return StripeGateway(
                api_key=config.secret_key,
                timeout_seconds=config.timeout_seconds,
            )
        return gateway_class()

    @classmethod
    def register_gateway(cls, name: str, gateway_class: type[PaymentGateway]) -> None:
        """
        Register a new gateway type.

        Args:
            name: Name to register the gateway under
            gateway_class: PaymentGateway subclass taking no constructor arguments
        """
        if not issubclass(gateway_class, PaymentGateway):
            raise TypeError(
                f"{gateway_class.__name__} must inherit from PaymentGateway"
            )

        cls._GATEWAYS[name.lower()] = gateway_class
        logger.info(
            "gateway_registered",
            gateway_name=name.lower(),
            gateway_class=gateway_class.__name__,
        )

    @classmethod
    def list_gateways(cls) -> list[str]:
        """Get sorted list of registered gateway names."""
        return sorted(cls._GATEWAYS.keys())


def get_gateway(config: ProcessorConfig | None = None) -> PaymentGateway:
    """
    Convenience function to create a payment gateway.

    Args:
        config: Processor config (defaults to one built from settings)

    Returns:
        PaymentGateway instance
    """
    if config is None:
        config = ProcessorConfig.from_settings()

    return GatewayFactory.create_gateway(config)
