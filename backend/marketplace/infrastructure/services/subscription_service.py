"""
Subscription Service

Seller subscription state machine. Webhook handlers, the reconciliation job
and the subscription endpoints all mutate subscriptions through this service
and nothing else.

Every apply_* operation is idempotent: replaying the same gateway event any
number of times leaves the same subscription, ledger and notification state
as applying it once. Each operation is one atomic unit that locks the
subscription row; notifications are dispatched only after that unit commits.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy.exc import IntegrityError

from marketplace.domain.clock import utcnow
from marketplace.domain.notification import NotificationType, PendingNotification
from marketplace.domain.subscription import (
    BillingCycle,
    CheckoutResponse,
    PlanTier,
    SubscriptionStatus,
    SubscriptionStatusResponse,
    can_transition,
    minor_to_major,
    next_period_end,
    resolve_billing_cycle,
)
from marketplace.infrastructure.db.database import DatabaseManager
from marketplace.infrastructure.db.models.subscription import SubscriptionModel
from marketplace.infrastructure.db.models.transaction import (
    TransactionModel,
    TransactionStatus,
    TransactionType,
)
from marketplace.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from marketplace.infrastructure.db.repositories.transaction_repository import (
    TransactionRepository,
)
from marketplace.infrastructure.exceptions import DuplicateError, GatewayError, NotFoundError
from marketplace.infrastructure.payments.razorpay_service import RazorpayService
from marketplace.infrastructure.services.notifier import Notifier


logger = logging.getLogger(__name__)

GATEWAY = "razorpay"

SubscriptionLookup = Callable[[SubscriptionRepository], Awaitable[Optional[SubscriptionModel]]]


class ChargeOutcome(str, Enum):
    """What apply_charge did with a charge event."""
    APPLIED = "APPLIED"
    REPLAYED = "REPLAYED"
    LEDGER_ONLY = "LEDGER_ONLY"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"


@dataclass
class _UnitResult:
    outcome: Any = None
    outbox: List[PendingNotification] = field(default_factory=list)


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


class SubscriptionService:
    """
    Subscription lifecycle operations.

    Args:
        db: Database manager built at startup
        notifier: Post-commit notification dispatcher
        gateway: Razorpay client, only needed for checkout and user cancel
    """

    def __init__(
        self,
        db: DatabaseManager,
        notifier: Notifier,
        gateway: Optional[RazorpayService] = None,
    ):
        self._db = db
        self._notifier = notifier
        self._gateway = gateway

    # =========================================================================
    # Gateway-driven transitions
    # =========================================================================

    async def apply_charge(
        self,
        subscription_external_id: str,
        payment_external_id: str,
        amount: int,
        gateway_status: Optional[str],
        plan_id: Optional[str] = None,
        raw: Optional[dict[str, Any]] = None,
    ) -> ChargeOutcome:
        """
        Record a successful recurring charge and extend the paid period.

        The new end date is the stored end date (or the start date for a
        first charge) plus one billing cycle. A charge whose ledger row
        already carries applied_period_end never extends the period again.

        Args:
            subscription_external_id: Gateway subscription ID
            payment_external_id: Gateway payment ID
            amount: Charged amount in minor units (paise/cents)
            gateway_status: Gateway payment status ("captured" means settled)
            plan_id: Gateway plan ID from the event, used only when the
                subscription has no stored billing cycle
            raw: Gateway payment entity, kept in the ledger row

        Returns:
            ChargeOutcome
        """
        result = None
        for attempt in range(2):
            try:
                result = await self._charge_unit(
                    subscription_external_id,
                    payment_external_id,
                    amount,
                    gateway_status,
                    plan_id,
                    raw,
                )
                break
            except IntegrityError:
                # Another delivery of the same payment inserted first
                if attempt:
                    raise
                logger.warning(
                    f"Concurrent ledger insert for payment {payment_external_id}, retrying as update"
                )

        await self._notifier.deliver(result.outbox)
        return result.outcome

    async def _charge_unit(
        self,
        subscription_external_id: str,
        payment_external_id: str,
        amount: int,
        gateway_status: Optional[str],
        plan_id: Optional[str],
        raw: Optional[dict[str, Any]],
    ) -> _UnitResult:
        async with self._db.session() as session:
            subscriptions = SubscriptionRepository(session)
            ledger = TransactionRepository(session)

            subscription = await subscriptions.get_by_gateway_id(
                subscription_external_id, for_update=True
            )
            if subscription is None:
                logger.warning(
                    f"Charge {payment_external_id} for unknown subscription {subscription_external_id}"
                )
                return _UnitResult(ChargeOutcome.SUBSCRIPTION_NOT_FOUND)

            settled = (gateway_status or "").lower() == "captured"
            txn_status = TransactionStatus.COMPLETED if settled else TransactionStatus.PENDING

            txn = await ledger.get_by_payment(payment_external_id, GATEWAY, for_update=True)
            if txn is not None and txn.applied_period_end is not None:
                if settled and txn.status != TransactionStatus.COMPLETED.value:
                    txn.status = TransactionStatus.COMPLETED.value
                logger.info(f"Charge {payment_external_id} already applied, not extending again")
                return _UnitResult(ChargeOutcome.REPLAYED)

            if txn is None:
                txn = TransactionModel(
                    gateway=GATEWAY,
                    external_payment_id=payment_external_id,
                    owner_id=subscription.owner_id,
                    subscription_id=subscription.id,
                    type=TransactionType.PAYMENT.value,
                )
            txn.amount = minor_to_major(amount)
            txn.platform_fee = Decimal("0.00")
            txn.status = txn_status.value
            txn.description = f"{subscription.tier} seller subscription charge"
            txn.event_data = {"event": "subscription.charged", "payment": raw or {}}

            if subscription.status == SubscriptionStatus.CANCELLED.value:
                # Money moved, so it is recorded, but a cancelled subscription stays cancelled
                await ledger.add(txn)
                logger.warning(
                    f"Charge {payment_external_id} arrived for cancelled subscription "
                    f"{subscription_external_id}; ledger only"
                )
                return _UnitResult(ChargeOutcome.LEDGER_ONLY)

            stored_cycle = BillingCycle(subscription.billing_cycle) if subscription.billing_cycle else None
            cycle = resolve_billing_cycle(stored_cycle, plan_id or subscription.gateway_plan_id)
            new_end = next_period_end(subscription.end_date, subscription.start_date, cycle)

            subscription.end_date = new_end
            subscription.status = SubscriptionStatus.ACTIVE.value
            subscription.billing_cycle = cycle.value
            subscription.last_payment_id = payment_external_id
            subscription.updated_at = utcnow()
            txn.applied_period_end = new_end

            await subscriptions.add(subscription)
            await ledger.add(txn)

            logger.info(
                f"Subscription {subscription_external_id} renewed until {new_end.isoformat()} "
                f"by payment {payment_external_id}"
            )
            return _UnitResult(
                ChargeOutcome.APPLIED,
                [
                    PendingNotification(
                        recipient_id=subscription.owner_id,
                        title="Subscription Renewed",
                        body=(
                            f"Your {subscription.tier} subscription was renewed. "
                            f"Next billing date: {_format_date(new_end)}."
                        ),
                        type=NotificationType.PAYMENT,
                        data={
                            "subscriptionId": subscription.id,
                            "paymentId": payment_external_id,
                            "amount": str(txn.amount),
                        },
                    )
                ],
            )

    async def apply_cancellation(self, subscription_external_id: str) -> bool:
        """
        Move a subscription to CANCELLED and stop auto-renewal.

        Returns:
            True when the status changed
        """
        return await self._apply_status(
            lambda repo: repo.get_by_gateway_id(subscription_external_id, for_update=True),
            SubscriptionStatus.CANCELLED,
            subscription_external_id,
        )

    async def apply_halt(self, subscription_external_id: str) -> bool:
        """Gateway gave up retrying a charge: ACTIVE -> INACTIVE."""
        return await self._apply_status(
            lambda repo: repo.get_by_gateway_id(subscription_external_id, for_update=True),
            SubscriptionStatus.INACTIVE,
            subscription_external_id,
        )

    async def apply_activation(self, subscription_external_id: str) -> bool:
        """Gateway activated the subscription. The paid period is not touched."""
        return await self._apply_status(
            lambda repo: repo.get_by_gateway_id(subscription_external_id, for_update=True),
            SubscriptionStatus.ACTIVE,
            subscription_external_id,
        )

    async def _apply_status(
        self,
        lookup: SubscriptionLookup,
        target: SubscriptionStatus,
        reference: str,
    ) -> bool:
        async with self._db.session() as session:
            repo = SubscriptionRepository(session)
            subscription = await lookup(repo)
            if subscription is None:
                logger.warning(f"Cannot apply {target.value} to unknown subscription {reference}")
                return False

            current = SubscriptionStatus(subscription.status)
            if current == target:
                logger.info(f"Subscription {reference} already {target.value}")
                return False
            if not can_transition(current, target):
                logger.warning(
                    f"Ignoring {current.value} -> {target.value} for subscription {reference}"
                )
                return False

            subscription.status = target.value
            if target == SubscriptionStatus.CANCELLED:
                subscription.auto_renew = False
            subscription.updated_at = utcnow()
            await repo.add(subscription)
            outbox = [self._status_notification(subscription, target)]

        logger.info(f"Subscription {reference}: {current.value} -> {target.value}")
        await self._notifier.deliver(outbox)
        return True

    @staticmethod
    def _status_notification(
        subscription: SubscriptionModel,
        target: SubscriptionStatus,
    ) -> PendingNotification:
        data = {"subscriptionId": subscription.id}
        if target == SubscriptionStatus.CANCELLED:
            return PendingNotification(
                subscription.owner_id,
                "Subscription Cancelled",
                "Your seller subscription has been cancelled. "
                "Your gigs stay listed until the end of the paid period.",
                NotificationType.SYSTEM,
                data,
            )
        if target == SubscriptionStatus.INACTIVE:
            return PendingNotification(
                subscription.owner_id,
                "Subscription Payment Failed",
                "We could not renew your seller subscription. "
                "Update your payment method to keep publishing gigs.",
                NotificationType.PAYMENT,
                {**data, "action": "update_payment_method"},
            )
        return PendingNotification(
            subscription.owner_id,
            "Subscription Activated",
            f"Your {subscription.tier} seller subscription is now active.",
            NotificationType.SYSTEM,
            data,
        )

    async def apply_payment_failure(
        self,
        payment_external_id: str,
        related_subscription_external_id: Optional[str] = None,
        amount: int = 0,
        raw: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Record a failed payment and tell the subscription owner once.

        The owner is told only when the related subscription is known; a
        ledger row alone is marked FAILED silently.

        Never changes subscription status; the gateway reports a lapsed
        subscription separately as halted. When no ledger row exists yet but
        the related subscription is known, a FAILED row is written so a
        redelivery finds it and stays silent.

        Returns:
            True when a ledger row became FAILED
        """
        async with self._db.session() as session:
            ledger = TransactionRepository(session)
            txn = await ledger.get_by_payment(payment_external_id, GATEWAY, for_update=True)
            if txn is not None and txn.status == TransactionStatus.FAILED.value:
                logger.info(f"Payment {payment_external_id} already marked FAILED")
                return False

            subscription = None
            if related_subscription_external_id:
                subscription = await SubscriptionRepository(session).get_by_gateway_id(
                    related_subscription_external_id
                )

            if txn is None and subscription is None:
                logger.warning(
                    f"Payment {payment_external_id} failed with no ledger row and no known subscription"
                )
                return False

            if txn is None:
                txn = TransactionModel(
                    gateway=GATEWAY,
                    external_payment_id=payment_external_id,
                    owner_id=subscription.owner_id,
                    subscription_id=subscription.id,
                    type=TransactionType.PAYMENT.value,
                    amount=minor_to_major(amount),
                    description=f"{subscription.tier} seller subscription charge",
                    event_data={"event": "payment.failed", "payment": raw or {}},
                )
            txn.status = TransactionStatus.FAILED.value
            txn.updated_at = utcnow()
            await ledger.add(txn)

            outbox = []
            if subscription is not None:
                outbox.append(
                    PendingNotification(
                        subscription.owner_id,
                        "Payment Failed",
                        "Your subscription payment failed. The gateway will retry; "
                        "please check your payment method.",
                        NotificationType.PAYMENT,
                        {"paymentId": payment_external_id, "subscriptionId": subscription.id},
                    )
                )

        logger.warning(f"Payment {payment_external_id} failed")
        await self._notifier.deliver(outbox)
        return True

    async def apply_payment_captured(self, payment_external_id: str) -> bool:
        """
        Settle an existing ledger row. Never inserts.

        Returns:
            True when a row moved to COMPLETED
        """
        async with self._db.session() as session:
            ledger = TransactionRepository(session)
            txn = await ledger.get_by_payment(payment_external_id, GATEWAY, for_update=True)
            if txn is None:
                logger.warning(f"Captured payment {payment_external_id} has no ledger row")
                return False
            if txn.status == TransactionStatus.COMPLETED.value:
                return False
            txn.status = TransactionStatus.COMPLETED.value
            txn.updated_at = utcnow()
            await ledger.add(txn)
        logger.info(f"Payment {payment_external_id} marked COMPLETED")
        return True

    # =========================================================================
    # User-driven operations
    # =========================================================================

    async def start_checkout(
        self,
        owner_id: str,
        tier: PlanTier,
        billing_cycle: BillingCycle,
    ) -> CheckoutResponse:
        """
        Create the gateway subscription and the local PENDING row.

        A seller's abandoned PENDING row is reused: its dates restart now and
        the gateway subscription it pointed at is cancelled once the new one
        is recorded.

        Raises:
            DuplicateError: Seller already has an active or lapsed subscription
            ConfigurationError: Gateway keys or plan missing
            GatewayError: Gateway rejected the request
        """
        async with self._db.session() as session:
            await self._ensure_no_live_subscription(SubscriptionRepository(session), owner_id)

        # No transaction is held open across the gateway call
        gateway_subscription = await self._require_gateway().create_subscription(
            owner_id, tier, billing_cycle
        )

        async with self._db.session() as session:
            repo = SubscriptionRepository(session)
            await self._ensure_no_live_subscription(repo, owner_id)
            subscription = await repo.get_governing_for_owner(owner_id, for_update=True)
            abandoned_id = None
            if subscription is None:
                subscription = SubscriptionModel(owner_id=owner_id, start_date=utcnow())
            else:
                abandoned_id = subscription.gateway_subscription_id
                subscription.start_date = utcnow()
                subscription.end_date = None
            subscription.tier = tier.value
            subscription.billing_cycle = billing_cycle.value
            subscription.status = SubscriptionStatus.PENDING.value
            subscription.auto_renew = True
            subscription.gateway_subscription_id = gateway_subscription["id"]
            subscription.gateway_plan_id = gateway_subscription.get("plan_id")
            subscription.updated_at = utcnow()
            await repo.add(subscription)

        if abandoned_id and abandoned_id != subscription.gateway_subscription_id:
            await self._cancel_abandoned(abandoned_id)

        logger.info(f"Checkout started for {owner_id}: {tier.value}/{billing_cycle.value}")
        return CheckoutResponse(
            subscription_id=subscription.id,
            gateway_subscription_id=subscription.gateway_subscription_id,
            short_url=gateway_subscription.get("short_url"),
            status=SubscriptionStatus.PENDING,
        )

    @staticmethod
    async def _ensure_no_live_subscription(repo: SubscriptionRepository, owner_id: str) -> None:
        current = await repo.get_governing_for_owner(owner_id)
        if current is not None and current.status != SubscriptionStatus.PENDING.value:
            raise DuplicateError(
                "Seller already has a subscription; cancel it before starting a new one",
                operation="checkout",
                table="subscriptions",
            )

    async def _cancel_abandoned(self, gateway_subscription_id: str) -> None:
        # The local row no longer points here, so a failure only leaves an
        # unpaid gateway subscription behind.
        try:
            await self._require_gateway().cancel_subscription(gateway_subscription_id)
        except GatewayError as e:
            logger.warning(
                f"Could not cancel abandoned gateway subscription {gateway_subscription_id}: {e}"
            )

    async def cancel_for_owner(self, owner_id: str) -> SubscriptionStatusResponse:
        """
        User-initiated cancellation.

        Cancels at the gateway first (when linked), then applies the same
        transition the cancellation webhook would.

        Raises:
            NotFoundError: No subscription to cancel
            GatewayError: Gateway refused the cancellation
        """
        async with self._db.session() as session:
            subscription = await SubscriptionRepository(session).get_governing_for_owner(owner_id)
        if subscription is None:
            raise NotFoundError("No subscription to cancel", operation="cancel", table="subscriptions")

        if subscription.gateway_subscription_id:
            await self._require_gateway().cancel_subscription(subscription.gateway_subscription_id)

        subscription_id = subscription.id
        await self._apply_status(
            lambda repo: repo.get_by_id(subscription_id, for_update=True),
            SubscriptionStatus.CANCELLED,
            subscription_id,
        )
        return await self.get_status(owner_id, subscription_id=subscription_id)

    def _require_gateway(self) -> RazorpayService:
        if self._gateway is None:
            raise RuntimeError("SubscriptionService was built without a gateway client")
        return self._gateway

    # =========================================================================
    # Read side
    # =========================================================================

    async def get_status(
        self,
        owner_id: str,
        subscription_id: Optional[str] = None,
    ) -> SubscriptionStatusResponse:
        """Current subscription state of a seller."""
        async with self._db.session() as session:
            repo = SubscriptionRepository(session)
            if subscription_id:
                subscription = await repo.get_by_id(subscription_id)
            else:
                subscription = await repo.get_governing_for_owner(owner_id)

        if subscription is None:
            return SubscriptionStatusResponse(is_active=False)

        return SubscriptionStatusResponse(
            is_active=self._is_active(subscription),
            days_remaining=self._days_remaining(subscription),
            tier=subscription.tier,
            status=subscription.status,
            billing_cycle=subscription.billing_cycle,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            auto_renew=subscription.auto_renew,
        )

    async def is_subscription_active(self, owner_id: str) -> bool:
        """Whether the seller may publish gigs right now."""
        async with self._db.session() as session:
            subscription = await SubscriptionRepository(session).get_governing_for_owner(owner_id)
        return subscription is not None and self._is_active(subscription)

    @staticmethod
    def _is_active(subscription: SubscriptionModel) -> bool:
        return (
            subscription.status == SubscriptionStatus.ACTIVE.value
            and subscription.end_date is not None
            and subscription.end_date > utcnow()
        )

    @staticmethod
    def _days_remaining(subscription: SubscriptionModel) -> int:
        if subscription.end_date is None:
            return 0
        seconds = (subscription.end_date - utcnow()).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    async def list_reconcilable(self, limit: int = 500) -> List[SubscriptionModel]:
        """Subscriptions the reconciliation job should compare with the gateway."""
        async with self._db.session() as session:
            return await SubscriptionRepository(session).list_linked_governing(limit)
