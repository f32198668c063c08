"""
Subscription Repository

Data access for seller subscriptions.
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.domain.subscription import GOVERNING_STATUSES
from marketplace.infrastructure.db.models.subscription import SubscriptionModel
from marketplace.infrastructure.db.repositories.base_repository import BaseRepository


_GOVERNING = [status.value for status in GOVERNING_STATUSES]


class SubscriptionRepository(BaseRepository[SubscriptionModel]):
    """Repository for subscription rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionModel, session)

    async def get_by_gateway_id(
        self,
        gateway_subscription_id: str,
        for_update: bool = False,
    ) -> Optional[SubscriptionModel]:
        """
        Get subscription by gateway subscription ID.

        Args:
            gateway_subscription_id: Razorpay subscription ID (sub_...)
            for_update: Lock the row until the unit of work ends
        """
        stmt = select(SubscriptionModel).where(
            SubscriptionModel.gateway_subscription_id == gateway_subscription_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_governing_for_owner(
        self,
        owner_id: str,
        for_update: bool = False,
    ) -> Optional[SubscriptionModel]:
        """Latest non-cancelled subscription of a seller, if any."""
        stmt = (
            select(SubscriptionModel)
            .where(SubscriptionModel.owner_id == owner_id)
            .where(SubscriptionModel.status.in_(_GOVERNING))
            .order_by(SubscriptionModel.created_at.desc())
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def list_linked_governing(self, limit: int = 500) -> List[SubscriptionModel]:
        """Non-cancelled subscriptions that exist at the gateway."""
        stmt = (
            select(SubscriptionModel)
            .where(SubscriptionModel.gateway_subscription_id.is_not(None))
            .where(SubscriptionModel.status.in_(_GOVERNING))
            .order_by(SubscriptionModel.created_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
