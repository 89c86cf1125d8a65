"""
Recurring subscription management.

A customer has at most one recurring lineage at a time:

    NoSubscription -> Active           first recurring contribution
    Active -> Active'                  new request supersedes the old one
    Active -> Terminated               installments exhausted (reconciliation job)

Stripe would otherwise update an existing subscription in place and defer
the charge to the next period, while the platform records a new recurring
contribution with an initial payment due now. So any active subscription is
cancelled before the new one is attached.
"""

import calendar
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import structlog

from contribution_gateway.gateway.base import PaymentGateway
from contribution_gateway.infrastructure.repository import MirrorStore
from contribution_gateway.models import (
    PLAN_ALREADY_EXISTS,
    GatewayCustomer,
    PaymentRequest,
    PlanSpec,
    RecurringTerms,
    SubscriptionWatch,
    minor_to_major_units,
)
from contribution_gateway.services.errors import ErrorClassifier

logger = structlog.get_logger(__name__)


def derive_plan_key(frequency_unit: str, frequency_interval: int | None, amount: int) -> str:
    """
    Deterministic plan id for a cadence and price.

    Examples:
        derive_plan_key("month", 1, 2550) == "every-1-month-2550"
    """
    return f"every-{frequency_interval or 1}-{frequency_unit}-{amount}"


def plan_display_name(frequency_unit: str, frequency_interval: int, amount: int) -> str:
    """Human-readable plan name shown in the Stripe dashboard."""
    return f"every {frequency_interval} {frequency_unit}s ${amount / 100:,.2f}"


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_end_time(installments: int | None, frequency_unit: str, now: datetime) -> int | None:
    """
    Epoch timestamp of the last installment.

    The horizon is ``installments`` whole frequency units from ``now``.
    Returns None when installments are zero or absent (indefinite).
    """
    if not installments:
        return None

    if frequency_unit == "day":
        end = now + timedelta(days=installments)
    elif frequency_unit == "week":
        end = now + timedelta(weeks=installments)
    elif frequency_unit == "month":
        end = _add_months(now, installments)
    elif frequency_unit == "year":
        end = _add_months(now, installments * 12)
    else:
        raise ValueError(f"Unsupported frequency unit: {frequency_unit}")

    return int(end.timestamp())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecurringSubscriptionManager:
    """Establishes a customer's recurring contribution on the gateway."""

    def __init__(
        self,
        gateway: PaymentGateway,
        store: MirrorStore,
        classifier: ErrorClassifier,
        is_live: bool,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.classifier = classifier
        self.is_live = is_live
        self.clock = clock

    def ensure_plan(self, request: PaymentRequest, terms: RecurringTerms, amount: int) -> str:
        """
        Make sure the plan for this cadence and amount exists remotely.

        Returns:
            The plan key
        """
        plan_key = derive_plan_key(terms.frequency_unit, terms.interval_count, amount)
        if self.store.plan_exists(plan_key):
            return plan_key

        plan = PlanSpec(
            plan_key=plan_key,
            amount=amount,
            interval=terms.frequency_unit,
            interval_count=terms.interval_count,
            currency=request.currency.lower(),
            name=plan_display_name(terms.frequency_unit, terms.interval_count, amount),
            livemode=self.is_live,
        )
        # A plan created by an earlier run whose mirror row was lost is fine
        self.classifier.call(
            request,
            self.gateway.create_plan,
            plan,
            ignores=[PLAN_ALREADY_EXISTS],
        )
        self.store.save_plan_mapping(plan_key)
        return plan_key

    def subscribe(
        self,
        request: PaymentRequest,
        customer: GatewayCustomer,
        amount: int,
    ) -> PaymentRequest:
        """
        Put ``customer`` on the recurring plan described by ``request.recurring``.

        Args:
            request: Payment request carrying recurring terms
            customer: Resolved gateway customer with the new payment source
            amount: Amount per installment, in minor units

        Returns:
            Copy of ``request`` with ``trxn_id``, ``fee_amount`` and ``net_amount`` set

        Raises:
            PaymentAborted: If any gateway call fails
        """
        terms = request.recurring
        if terms is None:
            raise ValueError("request has no recurring terms")

        plan_key = self.ensure_plan(request, terms, amount)

        if customer.active_subscription_id:
            logger.info(
                "superseding_active_subscription",
                customer_id=customer.id,
                subscription_id=customer.active_subscription_id,
            )
            self.classifier.call(
                request, self.gateway.cancel_subscription, customer.active_subscription_id
            )

        subscription = self.classifier.call(
            request, self.gateway.update_subscription, customer.id, plan_key
        )

        now = self.clock()
        watch = SubscriptionWatch(
            gateway_customer_id=customer.id,
            local_invoice_id=request.invoice_id,
            end_time=compute_end_time(terms.installments, terms.frequency_unit, now),
            is_live=self.is_live,
        )
        self._replace_watch(watch, now)

        fee_amount = minor_to_major_units(subscription.fee)
        # No balance transaction for the first period yet; net is approximate
        net_amount = minor_to_major_units(amount) - fee_amount

        logger.info(
            "recurring_contribution_established",
            customer_id=customer.id,
            plan_id=plan_key,
            subscription_id=subscription.id,
            invoice_id=request.invoice_id,
            end_time=watch.end_time,
        )
        return replace(
            request,
            trxn_id=subscription.id,
            fee_amount=fee_amount,
            net_amount=net_amount,
        )

    def _replace_watch(self, watch: SubscriptionWatch, now: datetime) -> None:
        """Cancel the customer's current lineage and record the new one."""
        existing = self.store.find_active_watch(watch.gateway_customer_id)
        if existing is not None:
            self.store.cancel_watch(existing.local_invoice_id, now)

        saved = self.store.save_watch(watch)
        if saved.local_invoice_id != watch.local_invoice_id:
            # A concurrent request inserted between our delete and insert
            self.store.cancel_watch(saved.local_invoice_id, now)
            self.store.save_watch(watch)
