"""
Processed Webhook Event Model

Records gateway event IDs that were handled, so an exact redelivery is
acknowledged without touching state again.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from marketplace.domain.clock import utcnow


class ProcessedWebhookEventModel(SQLModel, table=True):
    """Webhook event log."""

    __tablename__ = "processed_webhook_events"

    event_id: str = Field(primary_key=True, max_length=255)
    event_type: str = Field(max_length=100, nullable=False)
    processed_at: datetime = Field(default_factory=utcnow, nullable=False)
