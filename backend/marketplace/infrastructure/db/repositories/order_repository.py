"""
Order Repository

Data access for orders, their gigs and reviews.
"""

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.domain.order import ActorRole
from marketplace.infrastructure.db.models.gig import GigModel
from marketplace.infrastructure.db.models.order import OrderModel
from marketplace.infrastructure.db.models.review import ReviewModel
from marketplace.infrastructure.db.repositories.base_repository import BaseRepository


class OrderRepository(BaseRepository[OrderModel]):
    """Repository for order rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(OrderModel, session)

    async def list_for_user(
        self,
        user_id: str,
        role: ActorRole = ActorRole.BUYER,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[OrderModel], int]:
        """
        Orders where the user is the buyer (or seller), newest first.

        Returns:
            (page of orders, total matching)
        """
        column = OrderModel.seller_id if role == ActorRole.SELLER else OrderModel.buyer_id

        total_stmt = select(func.count()).select_from(OrderModel).where(column == user_id)
        total = (await self._session.execute(total_stmt)).scalar_one()

        stmt = (
            select(OrderModel)
            .where(column == user_id)
            .order_by(OrderModel.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all()), total


class GigRepository(BaseRepository[GigModel]):
    """Repository for gig rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(GigModel, session)


class ReviewRepository(BaseRepository[ReviewModel]):
    """Repository for review rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(ReviewModel, session)

    async def get_by_order(self, order_id: str) -> Optional[ReviewModel]:
        stmt = select(ReviewModel).where(ReviewModel.order_id == order_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
