"""
Transaction Repository

Ledger access keyed by (gateway, external payment id).
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.infrastructure.db.models.transaction import TransactionModel
from marketplace.infrastructure.db.repositories.base_repository import BaseRepository


class TransactionRepository(BaseRepository[TransactionModel]):
    """Repository for ledger rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(TransactionModel, session)

    async def get_by_payment(
        self,
        external_payment_id: str,
        gateway: str = "razorpay",
        for_update: bool = False,
    ) -> Optional[TransactionModel]:
        """Get the ledger row recorded for one gateway payment."""
        stmt = select(TransactionModel).where(
            TransactionModel.gateway == gateway,
            TransactionModel.external_payment_id == external_payment_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_subscription(self, subscription_id: str) -> List[TransactionModel]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.subscription_id == subscription_id)
            .order_by(TransactionModel.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_order(self, order_id: str) -> List[TransactionModel]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.order_id == order_id)
            .order_by(TransactionModel.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
