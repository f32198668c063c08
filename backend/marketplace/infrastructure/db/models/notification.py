"""
Notification Database Model

In-app notifications shown to buyers and sellers.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from marketplace.domain.clock import utcnow
from marketplace.domain.notification import NotificationType
from marketplace.infrastructure.db.models.base import IDMixin, JSONType


class NotificationModel(IDMixin, SQLModel, table=True):
    """
    Notification row.

    Written after the triggering transition commits, in its own session.
    """

    __tablename__ = "notifications"

    recipient_id: str = Field(index=True, nullable=False, max_length=64)
    title: str = Field(max_length=200)
    body: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    type: str = Field(default=NotificationType.SYSTEM.value, max_length=20)
    is_read: bool = Field(default=False, index=True)
    data: Optional[dict] = Field(default=None, sa_column=Column(JSONType, nullable=True))

    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
