"""
Subscription Domain Models

Enums, billing-window arithmetic and the subscription transition table.
Persistence lives in infrastructure/db; this module has no I/O.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class PlanTier(str, Enum):
    """Seller plan tiers."""
    TIER1 = "TIER1"
    TIER2 = "TIER2"
    TIER3 = "TIER3"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"


class BillingCycle(str, Enum):
    """Billing period for subscriptions."""
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


CYCLE_LENGTHS = {
    BillingCycle.MONTHLY: timedelta(days=30),
    BillingCycle.YEARLY: timedelta(days=365),
}


# Directed edges of the subscription lifecycle. ACTIVE -> ACTIVE is a renewal.
SUBSCRIPTION_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING: frozenset({
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELLED,
    }),
    SubscriptionStatus.ACTIVE: frozenset({
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.INACTIVE,
        SubscriptionStatus.CANCELLED,
    }),
    SubscriptionStatus.INACTIVE: frozenset({
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELLED,
    }),
    SubscriptionStatus.CANCELLED: frozenset(),
}

# Statuses under which a subscription still governs the seller's account.
GOVERNING_STATUSES = frozenset({
    SubscriptionStatus.PENDING,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.INACTIVE,
})


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    """Check whether the lifecycle has an edge from current to target."""
    return target in SUBSCRIPTION_TRANSITIONS.get(current, frozenset())


def resolve_billing_cycle(
    stored: Optional[BillingCycle],
    plan_id: Optional[str] = None,
) -> BillingCycle:
    """
    Decide which billing cycle a charge renews.

    The cycle stored on the subscription wins. The gateway plan identifier is
    only inspected when nothing is stored, and then only for a "year"
    substring.
    """
    if stored is not None:
        return BillingCycle(stored)
    if plan_id and "year" in plan_id.lower():
        return BillingCycle.YEARLY
    return BillingCycle.MONTHLY


def next_period_end(
    current_end: Optional[datetime],
    start: datetime,
    cycle: BillingCycle,
) -> datetime:
    """
    Extend a paid period by exactly one billing cycle.

    Always anchored on the stored end date (falling back to the start date for
    a first charge), never on the wall clock, so a late webhook cannot shrink
    time that was already paid for.
    """
    anchor = current_end if current_end is not None else start
    return anchor + CYCLE_LENGTHS[cycle]


def minor_to_major(amount: int) -> Decimal:
    """Convert a gateway amount in paise/cents into currency units."""
    return (Decimal(int(amount)) / Decimal(100)).quantize(Decimal("0.01"))


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CheckoutRequest(BaseModel):
    """Request DTO for starting a seller subscription checkout."""
    tier: PlanTier = Field(default=PlanTier.TIER1, description="Plan tier to purchase")
    billing_cycle: BillingCycle = Field(
        default=BillingCycle.MONTHLY,
        description="Billing period (monthly or yearly)"
    )


class CheckoutResponse(BaseModel):
    """Response DTO for a created checkout."""
    subscription_id: str
    gateway_subscription_id: str
    short_url: Optional[str] = None
    status: SubscriptionStatus


class SubscriptionStatusResponse(BaseModel):
    """Response DTO for subscription status."""
    is_active: bool = Field(description="Whether the seller may publish gigs")
    days_remaining: int = 0
    tier: Optional[PlanTier] = None
    status: Optional[SubscriptionStatus] = None
    billing_cycle: Optional[BillingCycle] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    auto_renew: bool = False
