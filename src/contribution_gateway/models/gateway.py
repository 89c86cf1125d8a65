"""Normalized representations of remote gateway objects.

Gateway implementations return these instead of SDK objects so that the
orchestration layer never depends on the shape of a particular SDK.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GatewayCustomer:
    """Remote customer."""

    id: str
    email: str | None = None
    deleted: bool = False
    active_subscription_id: str | None = None


@dataclass(frozen=True)
class GatewayCharge:
    """Remote one-time charge."""

    id: str
    amount: int
    currency: str
    balance_transaction_id: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class GatewayBalanceTransaction:
    """Settlement record for a charge. Amounts are in minor units."""

    id: str
    fee: int
    net: int


@dataclass(frozen=True)
class GatewayPlan:
    """Remote recurring billing plan."""

    id: str
    amount: int
    interval: str
    interval_count: int
    currency: str


@dataclass(frozen=True)
class GatewaySubscription:
    """Remote subscription attaching a customer to a plan."""

    id: str
    customer_id: str
    plan_id: str | None
    status: str
    # Minor units; zero when the gateway reports no fee for the first period
    fee: int = 0
