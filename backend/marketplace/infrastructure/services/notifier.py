"""
Notifier

Creates user-facing notifications. Every write happens in its own unit of
work, after the state change that triggered it has committed, and a failure
here never propagates to the caller: a lost notification must not undo or
mask a committed payment or order transition.
"""

import logging
from typing import Any, Iterable, List, Optional

from marketplace.domain.notification import (
    NotificationResponse,
    NotificationType,
    PendingNotification,
)
from marketplace.infrastructure.db.database import DatabaseManager
from marketplace.infrastructure.db.models.notification import NotificationModel
from marketplace.infrastructure.db.repositories.notification_repository import (
    NotificationRepository,
)


logger = logging.getLogger(__name__)


class Notifier:
    """
    Notification writer and reader.

    Args:
        db: Database manager built at startup
    """

    def __init__(self, db: DatabaseManager):
        self._db = db

    # =========================================================================
    # Write side
    # =========================================================================

    async def notify(
        self,
        recipient_id: str,
        title: str,
        body: str,
        type: NotificationType = NotificationType.SYSTEM,
        data: Optional[dict[str, Any]] = None,
    ) -> Optional[NotificationModel]:
        """
        Create one notification.

        Returns:
            The stored notification, or None when the write failed
        """
        try:
            async with self._db.session() as session:
                notification = NotificationModel(
                    recipient_id=recipient_id,
                    title=title,
                    body=body,
                    type=NotificationType(type).value,
                    data=data,
                )
                await NotificationRepository(session).add(notification)
            return notification
        except Exception as e:
            logger.error(f"Failed to notify {recipient_id} ({title}): {e}")
            return None

    async def deliver(self, outbox: Iterable[PendingNotification]) -> int:
        """
        Dispatch notifications collected while a transition was in flight.

        Call only after the transition's unit of work committed.

        Returns:
            Number of notifications stored
        """
        delivered = 0
        for pending in outbox:
            stored = await self.notify(
                pending.recipient_id,
                pending.title,
                pending.body,
                type=pending.type,
                data=pending.data,
            )
            if stored is not None:
                delivered += 1
        return delivered

    # =========================================================================
    # Read side
    # =========================================================================

    async def list_for_user(
        self,
        user_id: str,
        limit: int = 20,
        unread_only: bool = False,
    ) -> List[NotificationResponse]:
        async with self._db.session() as session:
            rows = await NotificationRepository(session).list_for_recipient(
                user_id, limit=limit, unread_only=unread_only
            )
        return [NotificationResponse.model_validate(row, from_attributes=True) for row in rows]

    async def unread_count(self, user_id: str) -> int:
        async with self._db.session() as session:
            return await NotificationRepository(session).unread_count(user_id)

    async def mark_read(self, user_id: str, ids: Optional[List[str]] = None) -> int:
        """Mark the given notifications (or all unread ones) as read."""
        async with self._db.session() as session:
            updated = await NotificationRepository(session).mark_read(user_id, ids)
        logger.info(f"Marked {updated} notifications read for {user_id}")
        return updated
