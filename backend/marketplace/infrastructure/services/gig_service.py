"""
Gig Service

Gig publication, gated on the seller holding an active subscription.
"""

import logging

from marketplace.domain.gig import CreateGigRequest, GigResponse
from marketplace.infrastructure.db.database import DatabaseManager
from marketplace.infrastructure.db.models.gig import GigModel
from marketplace.infrastructure.db.repositories.order_repository import GigRepository
from marketplace.infrastructure.exceptions import NotFoundError, SubscriptionRequiredError
from marketplace.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)


class GigService:
    """
    Args:
        db: Database manager built at startup
        subscriptions: Used for the publication gate
    """

    def __init__(self, db: DatabaseManager, subscriptions: SubscriptionService):
        self._db = db
        self._subscriptions = subscriptions

    async def create(self, seller_id: str, request: CreateGigRequest) -> GigResponse:
        """
        Publish a gig.

        Raises:
            SubscriptionRequiredError: Seller has no active, unexpired subscription
        """
        if not await self._subscriptions.is_subscription_active(seller_id):
            logger.info(f"Gig publication refused for {seller_id}: no active subscription")
            raise SubscriptionRequiredError(
                "An active seller subscription is required to publish gigs",
                details={"seller_id": seller_id},
            )

        async with self._db.session() as session:
            gig = GigModel(
                seller_id=seller_id,
                title=request.title,
                description=request.description,
                price=request.price,
                delivery_time_days=request.delivery_time_days,
                revisions_allowed=request.revisions_allowed,
            )
            await GigRepository(session).add(gig)

        logger.info(f"Gig {gig.id} published by {seller_id}")
        return GigResponse.model_validate(gig, from_attributes=True)

    async def get(self, gig_id: str) -> GigResponse:
        async with self._db.session() as session:
            gig = await GigRepository(session).get_by_id(gig_id)
        if gig is None:
            raise NotFoundError(f"Gig {gig_id} not found", operation="get", table="gigs")
        return GigResponse.model_validate(gig, from_attributes=True)
