# API Routes Module
from marketplace.api.routes import (
    cron,
    gigs,
    notifications,
    orders,
    subscriptions,
    webhooks,
)

__all__ = [
    "cron",
    "gigs",
    "notifications",
    "orders",
    "subscriptions",
    "webhooks",
]
