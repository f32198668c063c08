"""
Webhook Event Repository

Persistence for gateway event IDs that were already handled.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.infrastructure.db.models.webhook_event import ProcessedWebhookEventModel
from marketplace.infrastructure.db.repositories.base_repository import BaseRepository


class WebhookEventRepository(BaseRepository[ProcessedWebhookEventModel]):
    """Repository for the processed webhook event log."""

    def __init__(self, session: AsyncSession):
        super().__init__(ProcessedWebhookEventModel, session)

    async def is_processed(self, event_id: str) -> bool:
        return await self._session.get(ProcessedWebhookEventModel, event_id) is not None

    async def record(self, event_id: str, event_type: str) -> ProcessedWebhookEventModel:
        """Stage an event as processed; commits with the surrounding unit."""
        return await self.add(
            ProcessedWebhookEventModel(event_id=event_id, event_type=event_type)
        )
