"""
SQLModel ORM Models for the marketplace

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from marketplace.infrastructure.db.models.base import (
    IDMixin,
    JSONType,
    TimestampMixin,
    new_id,
)
from marketplace.infrastructure.db.models.gig import GigModel
from marketplace.infrastructure.db.models.subscription import SubscriptionModel
from marketplace.infrastructure.db.models.order import OrderModel
from marketplace.infrastructure.db.models.review import ReviewModel
from marketplace.infrastructure.db.models.transaction import (
    TransactionModel,
    TransactionStatus,
    TransactionType,
)
from marketplace.infrastructure.db.models.notification import NotificationModel
from marketplace.infrastructure.db.models.webhook_event import ProcessedWebhookEventModel


__all__ = [
    # Base
    "IDMixin",
    "JSONType",
    "TimestampMixin",
    "new_id",
    # Tables
    "GigModel",
    "SubscriptionModel",
    "OrderModel",
    "ReviewModel",
    "TransactionModel",
    "TransactionStatus",
    "TransactionType",
    "NotificationModel",
    "ProcessedWebhookEventModel",
]
