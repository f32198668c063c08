"""
Webhook Processor

Routes typed gateway events to exactly one subscription state-machine
operation, and keeps the log of processed gateway event IDs.
"""

import logging

from sqlalchemy.exc import IntegrityError

from marketplace.domain.events import (
    PaymentCaptured,
    PaymentFailed,
    SubscriptionActivated,
    SubscriptionCancelled,
    SubscriptionCharged,
    SubscriptionHalted,
    UnknownEvent,
    WebhookEvent,
)
from marketplace.infrastructure.db.database import DatabaseManager
from marketplace.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)
from marketplace.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)


def event_name(event: WebhookEvent) -> str:
    """Gateway event name of a parsed event."""
    if isinstance(event, UnknownEvent):
        return event.event_type
    return event.name


class WebhookProcessor:
    """
    Args:
        db: Database manager built at startup
        subscriptions: Subscription state machine
    """

    def __init__(self, db: DatabaseManager, subscriptions: SubscriptionService):
        self._db = db
        self._subscriptions = subscriptions

    # =========================================================================
    # Processed event log
    # =========================================================================

    async def is_processed(self, event_id: str) -> bool:
        async with self._db.session() as session:
            return await WebhookEventRepository(session).is_processed(event_id)

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        """Record a handled event. A concurrent duplicate record is harmless."""
        try:
            async with self._db.session() as session:
                await WebhookEventRepository(session).record(event_id, event_type)
        except IntegrityError:
            logger.info(f"Event {event_id} was recorded concurrently")

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def dispatch(self, event: WebhookEvent) -> None:
        """
        Apply one event.

        Exceptions from the state machine propagate; the caller decides how
        to acknowledge them.
        """
        if isinstance(event, SubscriptionCharged):
            await self._subscriptions.apply_charge(
                event.subscription.id,
                event.payment.id,
                event.payment.amount,
                event.payment.status,
                plan_id=event.subscription.plan_id,
                raw=event.payment.model_dump(),
            )
        elif isinstance(event, SubscriptionCancelled):
            await self._subscriptions.apply_cancellation(event.subscription.id)
        elif isinstance(event, SubscriptionHalted):
            await self._subscriptions.apply_halt(event.subscription.id)
        elif isinstance(event, SubscriptionActivated):
            await self._subscriptions.apply_activation(event.subscription.id)
        elif isinstance(event, PaymentCaptured):
            if event.payment.is_subscription_payment:
                # Settled through subscription.charged
                logger.info(f"Skipping captured subscription payment {event.payment.id}")
                return
            await self._subscriptions.apply_payment_captured(event.payment.id)
        elif isinstance(event, PaymentFailed):
            await self._subscriptions.apply_payment_failure(
                event.payment.id,
                event.payment.related_subscription_id,
                amount=event.payment.amount,
                raw=event.payment.model_dump(),
            )
        elif isinstance(event, UnknownEvent):
            logger.info(f"Unhandled event type: {event.event_type}")
        else:
            raise TypeError(f"Unroutable event {type(event).__name__}")
