"""Domain models for the Contribution Gateway."""

from contribution_gateway.models.billing import (
    PLAN_ALREADY_EXISTS,
    ChargeRequest,
    ChargeResult,
    Classification,
    CustomerMapping,
    IgnoreRule,
    PaymentRequest,
    PlanMapping,
    PlanSpec,
    RecurringTerms,
    SubscriptionWatch,
    amount_to_minor_units,
    minor_to_major_units,
)
from contribution_gateway.models.exceptions import (
    ConflictError,
    DeclinedError,
    FatalLocalError,
    GatewayError,
    GatewayErrorKind,
    GatewayFault,
    PaymentAborted,
    TransportFailure,
)
from contribution_gateway.models.gateway import (
    GatewayBalanceTransaction,
    GatewayCharge,
    GatewayCustomer,
    GatewayPlan,
    GatewaySubscription,
)

__all__ = [
    "PLAN_ALREADY_EXISTS",
    "ChargeRequest",
    "ChargeResult",
    "Classification",
    "ConflictError",
    "CustomerMapping",
    "DeclinedError",
    "FatalLocalError",
    "GatewayBalanceTransaction",
    "GatewayCharge",
    "GatewayCustomer",
    "GatewayError",
    "GatewayErrorKind",
    "GatewayFault",
    "GatewayPlan",
    "GatewaySubscription",
    "IgnoreRule",
    "PaymentAborted",
    "PaymentRequest",
    "PlanMapping",
    "PlanSpec",
    "RecurringTerms",
    "SubscriptionWatch",
    "TransportFailure",
    "amount_to_minor_units",
    "minor_to_major_units",
]
