"""
Notification Domain Models

Notifications are side effects of committed state transitions. State-machine
operations collect PendingNotification intents while their atomic unit is
open and hand them to the Notifier only after the unit commits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Notification categories."""
    SYSTEM = "SYSTEM"
    ORDER_UPDATE = "ORDER_UPDATE"
    PAYMENT = "PAYMENT"
    REVIEW = "REVIEW"


@dataclass(frozen=True)
class PendingNotification:
    """A notification to create once the triggering transition is durable."""
    recipient_id: str
    title: str
    body: str
    type: NotificationType = NotificationType.SYSTEM
    data: Optional[dict[str, Any]] = field(default=None, hash=False)


class NotificationResponse(BaseModel):
    """Notification response model."""
    id: str
    title: str
    body: str
    type: NotificationType
    is_read: bool
    data: Optional[dict[str, Any]] = None
    created_at: datetime


class MarkReadRequest(BaseModel):
    """Mark specific notifications read, or all of them when ids is empty."""
    ids: list[str] = Field(default_factory=list)


class UnreadCountResponse(BaseModel):
    unread: int
