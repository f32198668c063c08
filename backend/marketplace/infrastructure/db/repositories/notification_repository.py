"""
Notification Repository
"""

from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.infrastructure.db.models.notification import NotificationModel
from marketplace.infrastructure.db.repositories.base_repository import BaseRepository


class NotificationRepository(BaseRepository[NotificationModel]):
    """Repository for in-app notifications."""

    def __init__(self, session: AsyncSession):
        super().__init__(NotificationModel, session)

    async def list_for_recipient(
        self,
        recipient_id: str,
        limit: int = 20,
        unread_only: bool = False,
    ) -> List[NotificationModel]:
        """Newest notifications of one user."""
        stmt = select(NotificationModel).where(NotificationModel.recipient_id == recipient_id)
        if unread_only:
            stmt = stmt.where(NotificationModel.is_read.is_(False))
        stmt = stmt.order_by(NotificationModel.created_at.desc()).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def unread_count(self, recipient_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(NotificationModel)
            .where(NotificationModel.recipient_id == recipient_id)
            .where(NotificationModel.is_read.is_(False))
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def mark_read(self, recipient_id: str, ids: Optional[List[str]] = None) -> int:
        """
        Mark notifications read.

        Args:
            recipient_id: Only this user's notifications are touched
            ids: Specific notifications, or all unread ones when empty

        Returns:
            Number of rows updated
        """
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.recipient_id == recipient_id)
            .where(NotificationModel.is_read.is_(False))
            .values(is_read=True)
        )
        if ids:
            stmt = stmt.where(NotificationModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return result.rowcount or 0
