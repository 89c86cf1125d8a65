"""SQLAlchemy ORM models for the gateway mirror store."""

from datetime import datetime

from sqlalchemy import TIMESTAMP, BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from contribution_gateway.infrastructure.database import Base


class StripeCustomer(Base):
    """
    Mirror of remote customers, keyed by payer email.

    The unique email is what keeps two concurrent submissions from the same
    payer from mapping to two different remote customers.
    """

    __tablename__ = "stripe_customers"

    email: Mapped[str] = mapped_column(
        String(255), primary_key=True, comment="Payer email, case-sensitive as supplied"
    )

    gateway_customer_id: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Remote customer id (cus_...)"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Mapping creation timestamp",
    )


class StripePlan(Base):
    """
    Mirror of remote plans. Append-only; a row means the plan exists remotely.
    """

    __tablename__ = "stripe_plans"

    plan_key: Mapped[str] = mapped_column(
        String(255), primary_key=True, comment="Derived key: every-<interval>-<unit>-<amount>"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Plan mapping creation timestamp",
    )


class StripeSubscription(Base):
    """
    Subscription watch list read by the periodic reconciliation job.

    One row per customer: the customer's current recurring lineage.
    """

    __tablename__ = "stripe_subscriptions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, comment="Watch row id"
    )

    gateway_customer_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, comment="Remote customer id"
    )

    local_invoice_id: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True, comment="Invoice id of the recurring contribution"
    )

    end_time: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, comment="Epoch of the last installment; NULL means indefinite"
    )

    is_live: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="Live (true) or test (false) mode"
    )
