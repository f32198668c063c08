"""
Subscription Database Model

SQLModel table for seller subscriptions.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from marketplace.domain.subscription import PlanTier, SubscriptionStatus
from marketplace.infrastructure.db.models.base import IDMixin, TimestampMixin


class SubscriptionModel(IDMixin, TimestampMixin, table=True):
    """
    Seller subscription row. Never hard-deleted.

    end_date doubles as the next billing date while the subscription is
    active.
    """

    __tablename__ = "subscriptions"

    owner_id: str = Field(index=True, nullable=False, max_length=64)

    tier: str = Field(default=PlanTier.TIER1.value, max_length=20)
    status: str = Field(default=SubscriptionStatus.PENDING.value, max_length=20, index=True)
    # None means "infer from gateway_plan_id".
    billing_cycle: Optional[str] = Field(default=None, max_length=20)

    start_date: datetime = Field(nullable=False)
    end_date: Optional[datetime] = Field(default=None)
    auto_renew: bool = Field(default=True)

    # Gateway IDs
    gateway_subscription_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=255)
    gateway_plan_id: Optional[str] = Field(default=None, max_length=255)
    last_payment_id: Optional[str] = Field(default=None, max_length=255)
