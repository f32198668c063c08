"""
Order Domain Models

Order lifecycle enums, the transition table with its actor guards, and the
request/response DTOs used by the orders router.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from marketplace.infrastructure.exceptions import (
    ForbiddenActionError,
    InvalidTransitionError,
    ValidationError,
)


class OrderStatus(str, Enum):
    """Order lifecycle status."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"
    REFUNDED = "REFUNDED"


class ActorRole(str, Enum):
    """Relationship of the acting user to an order."""
    BUYER = "BUYER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


_PARTIES = frozenset({ActorRole.BUYER, ActorRole.SELLER})

# (from, to) -> roles allowed to take that edge
ORDER_TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], frozenset[ActorRole]] = {
    (OrderStatus.PENDING, OrderStatus.IN_PROGRESS): frozenset({ActorRole.SELLER}),
    (OrderStatus.IN_PROGRESS, OrderStatus.DELIVERED): frozenset({ActorRole.SELLER}),
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED): frozenset({ActorRole.BUYER}),
    (OrderStatus.PENDING, OrderStatus.CANCELLED): _PARTIES,
    (OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED): _PARTIES,
    (OrderStatus.PENDING, OrderStatus.DISPUTED): _PARTIES,
    (OrderStatus.IN_PROGRESS, OrderStatus.DISPUTED): _PARTIES,
    (OrderStatus.DELIVERED, OrderStatus.DISPUTED): _PARTIES,
    (OrderStatus.COMPLETED, OrderStatus.REFUNDED): frozenset({ActorRole.ADMIN}),
}


def authorize_transition(
    current: OrderStatus,
    target: OrderStatus,
    roles: frozenset[ActorRole],
) -> None:
    """
    Enforce the order transition table.

    Args:
        current: Status stored on the order
        target: Requested status
        roles: Every role the acting user holds on this order

    Raises:
        InvalidTransitionError: No edge from current to target
        ForbiddenActionError: Edge exists but none of the roles may take it
    """
    allowed = ORDER_TRANSITIONS.get((current, target))
    if allowed is None:
        raise InvalidTransitionError("order", current.value, target.value)
    if not allowed & roles:
        who = " or ".join(sorted(role.value.lower() for role in allowed))
        raise ForbiddenActionError(
            f"Only the {who} can move an order to {target.value}",
            details={"current": current.value, "requested": target.value},
        )


def validate_progress(current: int, requested: int) -> int:
    """Progress is a 0-100 percentage that never goes backwards."""
    if requested < 0 or requested > 100:
        raise ValidationError(
            "Progress must be between 0 and 100",
            details={"progress": requested},
        )
    if requested < current:
        raise InvalidTransitionError("order progress", f"{current}%", f"{requested}%")
    return requested


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateOrderRequest(BaseModel):
    """Request DTO for placing an order against a gig."""
    gig_id: str
    requirements: str = Field(default="", max_length=1000)


class ProgressRequest(BaseModel):
    """Seller progress update."""
    progress: int = Field(..., ge=0, le=100)


class StartOrderRequest(BaseModel):
    """Seller accepts the order and starts working."""
    progress: Optional[int] = Field(default=None, ge=0, le=100)


class DeliverOrderRequest(BaseModel):
    """Seller delivery with artifact references."""
    deliverables: list[str] = Field(default_factory=list)
    progress: Optional[int] = Field(default=None, ge=0, le=100)


class ReviewRequest(BaseModel):
    """Buyer review of a completed order."""
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class OrderResponse(BaseModel):
    """Order response model."""
    id: str
    gig_id: str
    buyer_id: str
    seller_id: str
    price: Decimal
    platform_fee: Decimal
    requirements: str
    status: OrderStatus
    progress: int
    deliverables: list[str]
    revisions_used: int
    revisions_allowed: int
    due_date: datetime
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReviewResponse(BaseModel):
    """Review response model."""
    id: str
    order_id: str
    gig_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class OrderListResponse(BaseModel):
    """Paginated order listing."""
    orders: list[OrderResponse]
    total: int
    page: int
    limit: int
