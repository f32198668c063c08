"""
Repository Layer for the Marketplace Backend

Exports all repository classes for dependency injection.
"""

from marketplace.infrastructure.db.repositories.base_repository import BaseRepository
from marketplace.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from marketplace.infrastructure.db.repositories.transaction_repository import (
    TransactionRepository,
)
from marketplace.infrastructure.db.repositories.order_repository import (
    GigRepository,
    OrderRepository,
    ReviewRepository,
)
from marketplace.infrastructure.db.repositories.notification_repository import (
    NotificationRepository,
)
from marketplace.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    # Repositories
    "SubscriptionRepository",
    "TransactionRepository",
    "OrderRepository",
    "GigRepository",
    "ReviewRepository",
    "NotificationRepository",
    "WebhookEventRepository",
]
