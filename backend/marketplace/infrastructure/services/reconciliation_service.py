"""
Subscription Reconciliation Service

Periodic repair job for missed or lost webhooks. For each subscription that
still governs a seller, the gateway's view is fetched and replayed through
the same idempotent state-machine operations the webhooks use, so running
the job any number of times is safe.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from marketplace.domain.subscription import SubscriptionStatus
from marketplace.infrastructure.exceptions import GatewayError
from marketplace.infrastructure.payments.razorpay_service import RazorpayService
from marketplace.infrastructure.services.subscription_service import (
    ChargeOutcome,
    SubscriptionService,
)


logger = logging.getLogger(__name__)

# Gateway subscription status -> local status it implies
GATEWAY_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "halted": SubscriptionStatus.INACTIVE,
    "cancelled": SubscriptionStatus.CANCELLED,
    "expired": SubscriptionStatus.CANCELLED,
}


@dataclass
class ReconciliationReport:
    """Summary of one reconciliation run."""
    checked: int = 0
    charges_applied: int = 0
    status_changes: int = 0
    failures: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "charges_applied": self.charges_applied,
            "status_changes": self.status_changes,
            "failures": self.failures,
        }


class ReconciliationService:
    """
    Args:
        subscriptions: Subscription state machine
        gateway: Razorpay client
    """

    def __init__(self, subscriptions: SubscriptionService, gateway: RazorpayService):
        self._subscriptions = subscriptions
        self._gateway = gateway

    async def run(self, limit: int = 500) -> ReconciliationReport:
        """Reconcile every linked, non-cancelled subscription."""
        report = ReconciliationReport()
        for subscription in await self._subscriptions.list_reconcilable(limit):
            report.checked += 1
            try:
                await self._reconcile_one(subscription.gateway_subscription_id, report)
            except GatewayError as e:
                logger.error(f"Reconciliation of {subscription.gateway_subscription_id} failed: {e}")
                report.failures.append(subscription.gateway_subscription_id)

        logger.info(
            f"Reconciled {report.checked} subscriptions: {report.charges_applied} charges, "
            f"{report.status_changes} status changes, {len(report.failures)} failures"
        )
        return report

    async def _reconcile_one(self, gateway_subscription_id: str, report: ReconciliationReport) -> None:
        remote = await self._gateway.fetch_subscription(gateway_subscription_id)
        invoices = await self._gateway.list_invoices(gateway_subscription_id)

        # Charges first, so a later halt or cancellation lands on the right period
        for invoice in sorted(invoices, key=lambda item: item.get("paid_at") or 0):
            if invoice.get("status") != "paid" or not invoice.get("payment_id"):
                continue
            outcome = await self._subscriptions.apply_charge(
                gateway_subscription_id,
                invoice["payment_id"],
                invoice.get("amount_paid") or invoice.get("amount") or 0,
                "captured",
                plan_id=remote.get("plan_id"),
                raw=invoice,
            )
            if outcome == ChargeOutcome.APPLIED:
                report.charges_applied += 1

        target = GATEWAY_STATUS_MAP.get(remote.get("status"))
        if target == SubscriptionStatus.ACTIVE:
            changed = await self._subscriptions.apply_activation(gateway_subscription_id)
        elif target == SubscriptionStatus.INACTIVE:
            changed = await self._subscriptions.apply_halt(gateway_subscription_id)
        elif target == SubscriptionStatus.CANCELLED:
            changed = await self._subscriptions.apply_cancellation(gateway_subscription_id)
        else:
            changed = False
        if changed:
            report.status_changes += 1
