"""
Razorpay Payment Service

Thin wrapper over the Razorpay SDK for the few gateway calls the marketplace
makes itself: creating and cancelling seller subscriptions at checkout, and
reading subscription/invoice state for reconciliation. Everything else the
gateway tells us arrives through webhooks.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Optional

import razorpay
from razorpay.errors import BadRequestError, ServerError
from razorpay.errors import GatewayError as RazorpaySDKGatewayError

from marketplace.config.settings import get_settings
from marketplace.domain.subscription import BillingCycle, PlanTier
from marketplace.infrastructure.exceptions import ConfigurationError, GatewayError


logger = logging.getLogger(__name__)

_SDK_ERRORS = (BadRequestError, ServerError, RazorpaySDKGatewayError)


class RazorpayService:
    """
    Razorpay subscription API client.

    SDK calls are blocking HTTP requests, so each one runs in a worker thread.
    Callers must not hold a database transaction open across these calls.
    """

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        plan_ids: Optional[dict[str, str]] = None,
        total_count: int = 12,
    ):
        self._plan_ids = plan_ids or {}
        self._total_count = total_count
        self._client: Optional[razorpay.Client] = None
        if key_id and key_secret:
            self._client = razorpay.Client(auth=(key_id, key_secret))

    def _require_client(self) -> razorpay.Client:
        if self._client is None:
            raise ConfigurationError(
                "Razorpay API keys are not configured",
                missing_keys=["RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET"],
            )
        return self._client

    def plan_id_for(self, tier: PlanTier, billing_cycle: BillingCycle) -> str:
        """Get the gateway plan ID for a tier/cycle combination."""
        plan_id = self._plan_ids.get(f"{tier.value}:{billing_cycle.value}")
        if not plan_id:
            raise ConfigurationError(
                f"No Razorpay plan configured for {tier.value}/{billing_cycle.value}",
                missing_keys=["RAZORPAY_PLAN_IDS"],
            )
        return plan_id

    async def _call(self, operation: str, fn, *args) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except _SDK_ERRORS as e:
            logger.error(f"Razorpay {operation} failed: {e}")
            raise GatewayError(
                f"Payment gateway call failed: {operation}",
                operation=operation,
                original_error=e,
            )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def create_subscription(
        self,
        owner_id: str,
        tier: PlanTier,
        billing_cycle: BillingCycle,
    ) -> dict:
        """
        Create a gateway subscription the seller will authorize.

        Args:
            owner_id: Internal seller ID (stored in notes)
            tier: Plan tier being purchased
            billing_cycle: Monthly or yearly billing

        Returns:
            Gateway subscription entity (id, short_url, status, ...)

        Raises:
            ConfigurationError: API keys or plan missing
            GatewayError: Gateway rejected the request
        """
        client = self._require_client()
        plan_id = self.plan_id_for(tier, billing_cycle)
        total_count = (
            max(1, self._total_count // 12)
            if billing_cycle == BillingCycle.YEARLY
            else self._total_count
        )
        payload = {
            "plan_id": plan_id,
            "total_count": total_count,
            "customer_notify": 1,
            "notes": {
                "type": "subscription",
                "userId": owner_id,
                "tier": tier.value,
                "billingCycle": billing_cycle.value,
            },
        }
        subscription = await self._call("subscription.create", client.subscription.create, payload)
        logger.info(f"Created Razorpay subscription {subscription.get('id')} for {owner_id}")
        return subscription

    async def cancel_subscription(self, gateway_subscription_id: str) -> dict:
        """Cancel a gateway subscription immediately."""
        client = self._require_client()
        result = await self._call(
            "subscription.cancel",
            client.subscription.cancel,
            gateway_subscription_id,
            {"cancel_at_cycle_end": 0},
        )
        logger.info(f"Cancelled Razorpay subscription {gateway_subscription_id}")
        return result

    async def fetch_subscription(self, gateway_subscription_id: str) -> dict:
        """Get the current gateway view of a subscription."""
        client = self._require_client()
        return await self._call(
            "subscription.fetch", client.subscription.fetch, gateway_subscription_id
        )

    async def list_invoices(self, gateway_subscription_id: str) -> list[dict]:
        """Invoices billed for a subscription, as the gateway reports them."""
        client = self._require_client()
        response = await self._call(
            "invoice.all",
            client.invoice.all,
            {"subscription_id": gateway_subscription_id},
        )
        return list(response.get("items", []))


@lru_cache
def get_razorpay_service() -> RazorpayService:
    """Get cached Razorpay service instance."""
    settings = get_settings()
    return RazorpayService(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        plan_ids=settings.razorpay_plan_ids,
        total_count=settings.subscription_total_count,
    )
