"""
Subscription API Routes

Seller subscription checkout, status and cancellation.
"""

import logging

from fastapi import APIRouter

from marketplace.api.dependencies import CurrentUserDep, SubscriptionServiceDep
from marketplace.domain.subscription import (
    CheckoutRequest,
    CheckoutResponse,
    SubscriptionStatusResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/subscriptions/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(user: CurrentUserDep, service: SubscriptionServiceDep):
    """Get the current seller's subscription status."""
    return await service.get_status(user.id)


@router.post("/subscriptions/checkout", response_model=CheckoutResponse)
async def create_checkout(
    request: CheckoutRequest,
    user: CurrentUserDep,
    service: SubscriptionServiceDep,
):
    """
    Start a subscription purchase.

    Returns the gateway subscription the seller must authorize. The local
    subscription stays PENDING until the gateway confirms the first charge.
    """
    logger.info(f"Checkout requested by {user.id}: {request.tier.value}/{request.billing_cycle.value}")
    return await service.start_checkout(user.id, request.tier, request.billing_cycle)


@router.post("/subscriptions/cancel", response_model=SubscriptionStatusResponse)
async def cancel_subscription(user: CurrentUserDep, service: SubscriptionServiceDep):
    """Cancel the seller's subscription at the gateway and locally."""
    return await service.cancel_for_owner(user.id)
