"""
Order API Routes

Every state change goes through the order state machine, which checks both
the transition and the caller's role on the order.
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from marketplace.api.dependencies import CurrentUserDep, OrderServiceDep
from marketplace.domain.order import (
    ActorRole,
    CreateOrderRequest,
    DeliverOrderRequest,
    OrderListResponse,
    OrderResponse,
    ProgressRequest,
    ReviewRequest,
    ReviewResponse,
    StartOrderRequest,
)


router = APIRouter()


# =============================================================================
# Orders
# =============================================================================

@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(request: CreateOrderRequest, user: CurrentUserDep, service: OrderServiceDep):
    """Place an order against a gig."""
    return await service.create(user.id, request)


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    user: CurrentUserDep,
    service: OrderServiceDep,
    role: str = Query(default="buyer", pattern="^(buyer|seller)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    """List orders the caller bought (role=buyer) or sold (role=seller)."""
    return await service.list_for_user(user.id, ActorRole(role.upper()), page=page, limit=limit)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, user: CurrentUserDep, service: OrderServiceDep):
    return await service.get(order_id, user.id, is_admin=user.is_admin)


# =============================================================================
# Transitions
# =============================================================================

@router.post("/orders/{order_id}/start", response_model=OrderResponse)
async def start_order(
    order_id: str,
    user: CurrentUserDep,
    service: OrderServiceDep,
    request: Optional[StartOrderRequest] = None,
):
    """Seller starts working on the order."""
    progress = request.progress if request else None
    return await service.start(order_id, user.id, user.is_admin, progress=progress)


@router.post("/orders/{order_id}/progress", response_model=OrderResponse)
async def update_progress(
    order_id: str,
    request: ProgressRequest,
    user: CurrentUserDep,
    service: OrderServiceDep,
):
    """Seller reports progress (never decreasing)."""
    return await service.update_progress(order_id, user.id, request.progress, user.is_admin)


@router.post("/orders/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(
    order_id: str,
    request: DeliverOrderRequest,
    user: CurrentUserDep,
    service: OrderServiceDep,
):
    """Seller delivers with artifact references."""
    return await service.deliver(
        order_id, user.id, request.deliverables, user.is_admin, progress=request.progress
    )


@router.post("/orders/{order_id}/accept", response_model=OrderResponse)
async def accept_order(order_id: str, user: CurrentUserDep, service: OrderServiceDep):
    """Buyer accepts the delivery."""
    return await service.accept(order_id, user.id, user.is_admin)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, user: CurrentUserDep, service: OrderServiceDep):
    return await service.cancel(order_id, user.id, user.is_admin)


@router.post("/orders/{order_id}/dispute", response_model=OrderResponse)
async def dispute_order(order_id: str, user: CurrentUserDep, service: OrderServiceDep):
    return await service.dispute(order_id, user.id, user.is_admin)


@router.post("/orders/{order_id}/refund", response_model=OrderResponse)
async def refund_order(order_id: str, user: CurrentUserDep, service: OrderServiceDep):
    """Admin refunds a completed order."""
    return await service.refund(order_id, user.id, user.is_admin)


@router.post(
    "/orders/{order_id}/review",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def review_order(
    order_id: str,
    request: ReviewRequest,
    user: CurrentUserDep,
    service: OrderServiceDep,
):
    """Buyer reviews a completed order (once)."""
    return await service.review(order_id, user.id, request)
