"""Base interface for payment gateways."""

from abc import ABC, abstractmethod

from contribution_gateway.models import (
    ChargeRequest,
    GatewayBalanceTransaction,
    GatewayCharge,
    GatewayCustomer,
    GatewayPlan,
    GatewaySubscription,
    PlanSpec,
)


class PaymentGateway(ABC):
    """
    Abstract base class for remote payment gateway clients.

    Implementations are stateless translators: every operation either returns
    a normalized object or raises one of DeclinedError, ConflictError,
    GatewayFault or TransportFailure. Implementations must not retry; retry
    policy belongs to the caller.
    """

    name: str = "base"

    @abstractmethod
    def create_customer(self, email: str, source: str, description: str) -> GatewayCustomer:
        """Create a remote customer with ``source`` as its default payment source."""

    @abstractmethod
    def retrieve_customer(self, customer_id: str) -> GatewayCustomer:
        """
        Retrieve a remote customer, including its active subscription id.

        Raises:
            GatewayFault: with code ``resource_missing`` when no such customer exists.
        """

    @abstractmethod
    def update_customer(self, customer_id: str, source: str) -> GatewayCustomer:
        """Replace the customer's default payment source with a new token."""

    @abstractmethod
    def create_charge(self, charge: ChargeRequest) -> GatewayCharge:
        """Submit a one-time charge."""

    @abstractmethod
    def retrieve_balance_transaction(self, balance_transaction_id: str) -> GatewayBalanceTransaction:
        """Retrieve fee and net figures for a settled charge."""

    @abstractmethod
    def create_plan(self, plan: PlanSpec) -> GatewayPlan:
        """
        Create a recurring billing plan keyed by ``plan.plan_key``.

        Raises:
            ConflictError: If a plan with that key already exists.
        """

    @abstractmethod
    def update_subscription(self, customer_id: str, plan_key: str) -> GatewaySubscription:
        """Attach the customer to ``plan_key`` without proration."""

    @abstractmethod
    def cancel_subscription(self, subscription_id: str) -> GatewaySubscription:
        """Cancel a remote subscription immediately."""
