"""Marketplace core tables

Revision ID: 0001_marketplace_core
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_marketplace_core'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create gigs, subscriptions, orders, reviews, transactions, notifications."""

    op.create_table(
        'gigs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('seller_id', sa.String(64), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('delivery_time_days', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('revisions_allowed', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('review_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False, index=True),

        # Subscription details
        sa.Column('tier', sa.String(20), nullable=False, server_default='TIER1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING', index=True),
        sa.Column('billing_cycle', sa.String(20)),

        # Billing window (end_date is the next billing date while active)
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True)),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default=sa.true()),

        # Gateway IDs
        sa.Column('gateway_subscription_id', sa.String(255), unique=True, index=True),
        sa.Column('gateway_plan_id', sa.String(255)),
        sa.Column('last_payment_id', sa.String(255)),
        *_timestamps(),
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('gig_id', sa.String(36), sa.ForeignKey('gigs.id'), nullable=False, index=True),
        sa.Column('buyer_id', sa.String(64), nullable=False, index=True),
        sa.Column('seller_id', sa.String(64), nullable=False, index=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('platform_fee', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('requirements', sa.Text(), nullable=False, server_default=''),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING', index=True),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deliverables', JSON, nullable=False),
        sa.Column('revisions_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('revisions_allowed', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('cancelled_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        'reviews',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=False, unique=True),
        sa.Column('gig_id', sa.String(36), sa.ForeignKey('gigs.id'), nullable=False, index=True),
        sa.Column('reviewer_id', sa.String(64), nullable=False, index=True),
        sa.Column('reviewee_id', sa.String(64), nullable=False, index=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text()),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_reviews_rating'),
        *_timestamps(),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('gateway', sa.String(32), nullable=False, server_default='razorpay'),
        sa.Column('external_payment_id', sa.String(255), nullable=False, index=True),
        sa.Column('owner_id', sa.String(64), nullable=False, index=True),
        sa.Column('subscription_id', sa.String(36), sa.ForeignKey('subscriptions.id'), index=True),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), index=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('platform_fee', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('type', sa.String(20), nullable=False, server_default='PAYMENT'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING', index=True),
        sa.Column('description', sa.String(500)),
        sa.Column('applied_period_end', sa.DateTime(timezone=True)),
        sa.Column('event_data', JSON),
        sa.UniqueConstraint('gateway', 'external_payment_id', name='uq_transactions_gateway_payment'),
        *_timestamps(),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('recipient_id', sa.String(64), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('body', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(20), nullable=False, server_default='SYSTEM'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('data', JSON),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
    )

    op.create_table(
        'processed_webhook_events',
        sa.Column('event_id', sa.String(255), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop marketplace core tables."""
    op.drop_table('processed_webhook_events')
    op.drop_table('notifications')
    op.drop_table('transactions')
    op.drop_table('reviews')
    op.drop_table('orders')
    op.drop_table('subscriptions')
    op.drop_table('gigs')
