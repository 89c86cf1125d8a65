"""create stripe mirror tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create customer, plan and subscription-watch mirror tables."""
    op.create_table(
        'stripe_customers',
        sa.Column('email', sa.String(length=255), nullable=False, comment='Payer email, case-sensitive as supplied'),
        sa.Column('gateway_customer_id', sa.String(length=255), nullable=False, comment='Remote customer id (cus_...)'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('email', name='pk_stripe_customers'),
    )

    op.create_table(
        'stripe_plans',
        sa.Column('plan_key', sa.String(length=255), nullable=False, comment='Derived key: every-<interval>-<unit>-<amount>'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('plan_key', name='pk_stripe_plans'),
    )

    op.create_table(
        'stripe_subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('gateway_customer_id', sa.String(length=255), nullable=False, comment='Remote customer id'),
        sa.Column('local_invoice_id', sa.String(length=255), nullable=False, comment='Invoice id of the recurring contribution'),
        sa.Column('end_time', sa.BigInteger(), nullable=True, comment='Epoch of the last installment; NULL means indefinite'),
        sa.Column('is_live', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id', name='pk_stripe_subscriptions'),
        # One live recurring lineage per customer
        sa.UniqueConstraint('gateway_customer_id', name='uq_stripe_subscriptions_customer'),
    )
    op.create_index(
        'idx_stripe_subscriptions_invoice',
        'stripe_subscriptions',
        ['local_invoice_id'],
    )


def downgrade() -> None:
    """Drop mirror tables."""
    op.drop_index('idx_stripe_subscriptions_invoice', table_name='stripe_subscriptions')
    op.drop_table('stripe_subscriptions')
    op.drop_table('stripe_plans')
    op.drop_table('stripe_customers')
