"""Payment processor facade used by the contribution platform."""

from typing import NoReturn

import structlog
from sqlalchemy.orm import Session

from contribution_gateway.collaborators import RecurringContributionRecords, Router, UrlRouter
from contribution_gateway.config import ProcessorConfig, check_config
from contribution_gateway.gateway import GatewayFactory, PaymentGateway
from contribution_gateway.infrastructure.repository import MirrorStore
from contribution_gateway.models import FatalLocalError, PaymentRequest
from contribution_gateway.services import (
    ChargeOrchestrator,
    ErrorClassifier,
    RecurringSubscriptionManager,
)

logger = structlog.get_logger(__name__)


class StripePaymentProcessor:
    """
    Wires the gateway, mirror store and orchestrators for one processor config.

    One instance serves one request: it holds the request's database session.
    """

    def __init__(
        self,
        config: ProcessorConfig,
        session: Session,
        records: RecurringContributionRecords,
        router: Router | None = None,
        gateway: PaymentGateway | None = None,
    ) -> None:
        """
        Args:
            config: Processor credentials and live/test mode
            session: Database session for the mirror store
            records: Collaborator that cancels local recurring contributions
            router: Builds retry URLs (defaults to UrlRouter over settings)
            gateway: Gateway override; normally created from ``config``
        """
        self.config = config
        self.gateway = gateway or GatewayFactory.create_gateway(config)
        self.store = MirrorStore(session, records)
        self.classifier = ErrorClassifier(router or UrlRouter())
        self.recurring = RecurringSubscriptionManager(
            self.gateway, self.store, self.classifier, is_live=config.is_live
        )
        self.orchestrator = ChargeOrchestrator(
            self.gateway, self.store, self.classifier, self.recurring
        )

    def check_config(self) -> list[str]:
        """Problems with this processor's credentials; empty when usable."""
        return check_config(self.config)

    def do_direct_payment(self, request: PaymentRequest) -> PaymentRequest:
        """Charge the payer or set up their recurring contribution."""
        return self.orchestrator.do_direct_payment(request)

    def do_transfer_checkout(self, request: PaymentRequest) -> NoReturn:
        """Transfer (off-site) checkout is not supported."""
        logger.error("transfer_checkout_rejected", invoice_id=request.invoice_id)
        raise FatalLocalError("Use direct billing instead of Transfer method.")
