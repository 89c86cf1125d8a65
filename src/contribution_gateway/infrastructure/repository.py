"""Repository layer for the gateway mirror store.

The mirror store is the single source of deduplication truth for remote
customers, plans and the subscription watch list. Every insert runs inside a
SAVEPOINT; a unique-constraint violation means a concurrent request got there
first, so the existing row is re-read and returned instead of failing.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from contribution_gateway.collaborators import RecurringContributionRecords
from contribution_gateway.infrastructure.models import (
    StripeCustomer,
    StripePlan,
    StripeSubscription,
)
from contribution_gateway.models import CustomerMapping, PlanMapping, SubscriptionWatch

logger = structlog.get_logger(__name__)


class MirrorStore:
    """Repository for customer, plan and subscription-watch mirror rows."""

    def __init__(self, session: Session, records: RecurringContributionRecords):
        """Initialize the store.

        Args:
            session: SQLAlchemy database session
            records: Collaborator that cancels local recurring contributions
        """
        self.session = session
        self.records = records

    # Customers

    def find_customer_by_email(self, email: str) -> Optional[CustomerMapping]:
        """Look up the customer mapping for an email.

        Args:
            email: Payer email, matched exactly

        Returns:
            CustomerMapping if found, None otherwise
        """
        row = (
            self.session.query(StripeCustomer)
            .filter(StripeCustomer.email == email)
            .first()
        )
        if not row:
            return None
        return CustomerMapping(email=row.email, gateway_customer_id=row.gateway_customer_id)

    def save_customer_mapping(self, email: str, gateway_customer_id: str) -> CustomerMapping:
        """Insert a customer mapping, or return the one a concurrent request saved.

        Args:
            email: Payer email
            gateway_customer_id: Remote customer id

        Returns:
            The mapping now stored for ``email``
        """
        try:
            with self.session.begin_nested():
                self.session.add(
                    StripeCustomer(email=email, gateway_customer_id=gateway_customer_id)
                )
        except IntegrityError:
            existing = (
                self.session.query(StripeCustomer)
                .filter(StripeCustomer.email == email)
                .one()
            )
            logger.warning(
                "customer_mapping_conflict",
                gateway_customer_id=gateway_customer_id,
                existing_customer_id=existing.gateway_customer_id,
            )
            return CustomerMapping(
                email=existing.email, gateway_customer_id=existing.gateway_customer_id
            )

        logger.info("customer_mapping_saved", gateway_customer_id=gateway_customer_id)
        return CustomerMapping(email=email, gateway_customer_id=gateway_customer_id)

    def delete_customer_mapping(self, email: str) -> None:
        """Delete the mapping for an email, if any."""
        deleted = (
            self.session.query(StripeCustomer)
            .filter(StripeCustomer.email == email)
            .delete(synchronize_session="fetch")
        )
        self.session.flush()
        logger.info("customer_mapping_deleted", rows=deleted)

    # Plans

    def plan_exists(self, plan_key: str) -> bool:
        """Check whether a plan is recorded as existing remotely."""
        return self.session.get(StripePlan, plan_key) is not None

    def save_plan_mapping(self, plan_key: str) -> PlanMapping:
        """Record a plan; a concurrent insert of the same key is not an error."""
        try:
            with self.session.begin_nested():
                self.session.add(StripePlan(plan_key=plan_key))
        except IntegrityError:
            logger.debug("plan_mapping_exists", plan_key=plan_key)
        else:
            logger.info("plan_mapping_saved", plan_key=plan_key)
        return PlanMapping(plan_key=plan_key)

    # Subscription watch list

    def find_active_watch(self, gateway_customer_id: str) -> Optional[SubscriptionWatch]:
        """Return the customer's watch row, if any."""
        row = (
            self.session.query(StripeSubscription)
            .filter(StripeSubscription.gateway_customer_id == gateway_customer_id)
            .first()
        )
        if not row:
            return None
        return self._to_watch(row)

    def cancel_watch(self, invoice_id: str, cancelled_at: datetime | None = None) -> None:
        """Cancel the local recurring contribution and drop it from the watch list.

        Args:
            invoice_id: Invoice id of the recurring contribution being superseded
            cancelled_at: Cancellation time (defaults to now, UTC)
        """
        cancelled_at = cancelled_at or datetime.now(timezone.utc)
        self.records.cancel_by_invoice_id(invoice_id, cancelled_at)

        self.session.query(StripeSubscription).filter(
            StripeSubscription.local_invoice_id == invoice_id
        ).delete(synchronize_session="fetch")
        self.session.flush()
        logger.info("watch_cancelled", invoice_id=invoice_id)

    def save_watch(self, watch: SubscriptionWatch) -> SubscriptionWatch:
        """Insert a watch row.

        Returns:
            The row now stored for the customer. It differs from ``watch`` only
            when a concurrent request inserted its own row first.
        """
        try:
            with self.session.begin_nested():
                self.session.add(
                    StripeSubscription(
                        gateway_customer_id=watch.gateway_customer_id,
                        local_invoice_id=watch.local_invoice_id,
                        end_time=watch.end_time,
                        is_live=watch.is_live,
                    )
                )
        except IntegrityError:
            existing = self.find_active_watch(watch.gateway_customer_id)
            if existing is None:
                raise
            logger.warning(
                "watch_conflict",
                gateway_customer_id=watch.gateway_customer_id,
                existing_invoice_id=existing.local_invoice_id,
            )
            return existing

        logger.info(
            "watch_saved",
            gateway_customer_id=watch.gateway_customer_id,
            invoice_id=watch.local_invoice_id,
            end_time=watch.end_time,
        )
        return watch

    def _to_watch(self, row: StripeSubscription) -> SubscriptionWatch:
        return SubscriptionWatch(
            gateway_customer_id=row.gateway_customer_id,
            local_invoice_id=row.local_invoice_id,
            end_time=row.end_time,
            is_live=row.is_live,
        )
