"""Billing domain models: mirror rows, payment requests and results."""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from contribution_gateway.models.exceptions import GatewayErrorKind

# Units the gateway accepts as a plan interval
FREQUENCY_UNITS = ("day", "week", "month", "year")


def amount_to_minor_units(amount: Decimal | str | float | int) -> int:
    """
    Convert a major-unit amount (e.g. "25.5") to integer minor units (2550).

    The amount is rounded to two decimal places first; this assumes a
    2-decimal currency.
    """
    quantized = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(re.sub(r"[^\d]", "", f"{quantized:.2f}"))


def minor_to_major_units(amount: int) -> Decimal:
    """Convert gateway minor units to a major-unit Decimal (2550 -> 25.50)."""
    return Decimal(amount) / 100


@dataclass(frozen=True)
class CustomerMapping:
    """Local mirror row pairing a payer email with a gateway customer."""

    email: str
    gateway_customer_id: str


@dataclass(frozen=True)
class PlanMapping:
    """Local mirror row recording that a plan exists remotely."""

    plan_key: str


@dataclass(frozen=True)
class SubscriptionWatch:
    """
    Local record linking a gateway customer to its live recurring lineage.

    ``end_time`` is an epoch timestamp for the last installment, or None when
    installments continue indefinitely. The periodic reconciliation job reads
    these rows; this service only writes them.
    """

    gateway_customer_id: str
    local_invoice_id: str
    end_time: int | None
    is_live: bool


@dataclass(frozen=True)
class RecurringTerms:
    """Cadence for a recurring contribution."""

    frequency_unit: str
    frequency_interval: int = 1
    installments: int | None = None

    def __post_init__(self) -> None:
        if self.frequency_unit not in FREQUENCY_UNITS:
            raise ValueError(
                f"frequency_unit must be one of {', '.join(FREQUENCY_UNITS)}, "
                f"got {self.frequency_unit!r}"
            )
        if self.frequency_interval is not None and self.frequency_interval < 0:
            raise ValueError("frequency_interval must not be negative")
        if self.installments is not None and self.installments < 0:
            raise ValueError("installments must not be negative")

    @property
    def interval_count(self) -> int:
        """Interval count, defaulting an empty interval to 1."""
        return self.frequency_interval or 1


@dataclass(frozen=True)
class PaymentRequest:
    """
    A payment submitted by the contribution form.

    The result fields (``trxn_id``, ``fee_amount``, ``net_amount``) are empty
    on the way in and filled on the copy returned by the charge flow.
    """

    amount_cents: int | None
    currency: str
    email: str | None
    payment_token: str | None
    invoice_id: str
    description: str | None = None
    form_key: str = ""
    select_membership: bool = False
    contribution_page_id: str | None = None
    recurring: RecurringTerms | None = None

    trxn_id: str | None = None
    fee_amount: Decimal | None = None
    net_amount: Decimal | None = None

    @classmethod
    def from_major_units(
        cls, amount: Decimal | str | float | int | None, **fields
    ) -> "PaymentRequest":
        """
        Build a request from the form's major-unit amount (e.g. "25.50").

        Args:
            amount: Amount as entered on the form, or None when there is none
            **fields: The remaining PaymentRequest fields

        Returns:
            A request carrying the amount in minor units
        """
        amount_cents = None if amount is None else amount_to_minor_units(amount)
        return cls(amount_cents=amount_cents, **fields)

    @property
    def is_event_registration(self) -> bool:
        """True when the payment came from an event registration form."""
        return not self.select_membership and not self.contribution_page_id

    @property
    def is_repeat_membership_charge(self) -> bool:
        """
        True for the second charge of a membership form submission.

        The customer's source was already updated by the first charge, and
        single-use tokens must not be replayed.
        """
        return self.select_membership and not self.contribution_page_id


@dataclass(frozen=True)
class ChargeRequest:
    """Parameters for a one-time gateway charge."""

    amount: int
    currency: str
    description: str
    customer_id: str | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.customer_id and not self.source:
            raise ValueError("either customer_id or source is required")


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of a successful charge."""

    trxn_id: str
    fee_amount: Decimal | None = None
    net_amount: Decimal | None = None


@dataclass(frozen=True)
class PlanSpec:
    """Parameters for creating a recurring billing plan."""

    plan_key: str
    amount: int
    interval: str
    interval_count: int
    currency: str
    name: str
    livemode: bool


@dataclass(frozen=True)
class IgnoreRule:
    """A gateway error the caller wants treated as success."""

    kind: GatewayErrorKind
    type: str
    message: str


class Classification(str, Enum):
    """Outcome of classifying a gateway error."""

    IGNORED = "ignored"
    DECLINED = "declined"
    FAULT = "fault"
    TRANSPORT = "transport"


PLAN_ALREADY_EXISTS = IgnoreRule(
    kind=GatewayErrorKind.CONFLICT,
    type="invalid_request_error",
    message="Plan already exists.",
)
