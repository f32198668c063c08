"""
Integration Tests for Webhooks (Razorpay)

Verifies:
- Authentication failures (401) and a missing secret (500)
- Malformed bodies (400) and unknown events (200)
- Renewal over HTTP, including exact and event-id redeliveries
- Acknowledgement policy for handler and database failures
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from marketplace.config.settings import get_settings
from marketplace.infrastructure.db.models import (
    NotificationModel,
    ProcessedWebhookEventModel,
    SubscriptionModel,
    TransactionModel,
)
from tests.conftest import charged_body, seed_subscription, sign


URL = "/api/webhooks/razorpay"


def _headers(body: bytes, event_id: str = None) -> dict:
    headers = {"X-Razorpay-Signature": sign(body), "Content-Type": "application/json"}
    if event_id:
        headers["X-Razorpay-Event-Id"] = event_id
    return headers


async def _rows(db, model) -> list:
    async with db.session() as session:
        return list((await session.execute(select(model))).scalars().all())


class TestWebhookAuthentication:

    @pytest.mark.asyncio
    async def test_missing_signature(self, async_client, db):
        await seed_subscription(db)

        response = await async_client.post(URL, content=charged_body())

        assert response.status_code == 401
        assert await _rows(db, TransactionModel) == []

    @pytest.mark.asyncio
    async def test_forged_signature(self, async_client, db):
        await seed_subscription(db)
        body = charged_body()

        response = await async_client.post(
            URL, content=body, headers={"X-Razorpay-Signature": sign(body, "not-the-secret")}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid signature"
        assert await _rows(db, TransactionModel) == []

    @pytest.mark.asyncio
    async def test_signature_over_different_body(self, async_client, db):
        await seed_subscription(db)
        signed = charged_body(amount=100)

        response = await async_client.post(
            URL, content=charged_body(amount=999999), headers=_headers(signed)
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_secret_not_configured(self, app, async_client, settings):
        app.dependency_overrides[get_settings] = lambda: settings.model_copy(
            update={"razorpay_webhook_secret": None}
        )
        body = charged_body()

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 500


class TestWebhookParsing:

    @pytest.mark.asyncio
    async def test_malformed_json(self, async_client):
        body = b"{not json"

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 400
        assert response.json()["error"] == "MalformedEventError"

    @pytest.mark.asyncio
    async def test_known_event_missing_entity(self, async_client):
        body = json.dumps({"event": "subscription.charged", "payload": {}}).encode()

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(self, async_client, db):
        body = json.dumps({"event": "invoice.expired", "payload": {}}).encode()

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert await _rows(db, TransactionModel) == []


class TestSubscriptionWebhooks:

    @pytest.mark.asyncio
    async def test_yearly_renewal(self, async_client, db):
        await seed_subscription(db, billing_cycle="YEARLY", end_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        body = charged_body(amount=9900, plan_id="plan_yearly")

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        subscription = (await _rows(db, SubscriptionModel))[0]
        assert subscription.end_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
        transactions = await _rows(db, TransactionModel)
        assert len(transactions) == 1
        assert transactions[0].status == "COMPLETED"
        assert len(await _rows(db, NotificationModel)) == 1

    @pytest.mark.asyncio
    async def test_exact_redelivery_without_event_id(self, async_client, db):
        await seed_subscription(db, end_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        body = charged_body()

        for _ in range(3):
            response = await async_client.post(URL, content=body, headers=_headers(body))
            assert response.status_code == 200

        assert (await _rows(db, SubscriptionModel))[0].end_date == datetime(2025, 1, 31, tzinfo=timezone.utc)
        assert len(await _rows(db, TransactionModel)) == 1
        assert len(await _rows(db, NotificationModel)) == 1

    @pytest.mark.asyncio
    async def test_redelivery_with_event_id(self, async_client, db):
        await seed_subscription(db, end_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        body = charged_body()

        first = await async_client.post(URL, content=body, headers=_headers(body, "evt_1"))
        second = await async_client.post(URL, content=body, headers=_headers(body, "evt_1"))

        assert first.json() == {"status": "success"}
        assert second.json() == {"status": "already_processed"}
        processed = await _rows(db, ProcessedWebhookEventModel)
        assert [(row.event_id, row.event_type) for row in processed] == [
            ("evt_1", "subscription.charged")
        ]

    @pytest.mark.asyncio
    async def test_unknown_subscription_acknowledged(self, async_client, db):
        body = charged_body(subscription_id="sub_nobody")

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 200
        assert await _rows(db, TransactionModel) == []

    @pytest.mark.asyncio
    async def test_halted(self, async_client, db):
        await seed_subscription(db)
        body = json.dumps({
            "event": "subscription.halted",
            "payload": {"subscription": {"entity": {"id": "sub_1", "status": "halted"}}},
        }).encode()

        response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 200
        assert (await _rows(db, SubscriptionModel))[0].status == "INACTIVE"

    @pytest.mark.asyncio
    async def test_payment_failed_leaves_status(self, async_client, db):
        await seed_subscription(db)
        body = json.dumps({
            "event": "payment.failed",
            "payload": {"payment": {"entity": {
                "id": "pay_f",
                "amount": 49900,
                "status": "failed",
                "notes": {"type": "subscription", "subscriptionId": "sub_1"},
            }}},
        }).encode()

        await async_client.post(URL, content=body, headers=_headers(body))
        await async_client.post(URL, content=body, headers=_headers(body))

        assert (await _rows(db, SubscriptionModel))[0].status == "ACTIVE"
        transactions = await _rows(db, TransactionModel)
        assert [t.status for t in transactions] == ["FAILED"]
        assert len(await _rows(db, NotificationModel)) == 1


class TestWebhookFailurePolicy:

    @pytest.mark.asyncio
    async def test_handler_error_acknowledged(self, async_client, db):
        body = charged_body()

        with patch(
            "marketplace.infrastructure.services.webhook_processor.WebhookProcessor.dispatch",
            new_callable=AsyncMock,
            side_effect=RuntimeError("unexpected payload shape"),
        ):
            response = await async_client.post(URL, content=body, headers=_headers(body, "evt_err"))

        assert response.status_code == 200
        assert response.json() == {"status": "error", "message": "unexpected payload shape"}
        assert await _rows(db, ProcessedWebhookEventModel) == []

    @pytest.mark.asyncio
    async def test_database_unavailable_asks_for_retry(self, async_client):
        body = charged_body()

        with patch(
            "marketplace.infrastructure.services.webhook_processor.WebhookProcessor.dispatch",
            new_callable=AsyncMock,
            side_effect=OperationalError("UPDATE subscriptions", {}, Exception("connection refused")),
        ):
            response = await async_client.post(URL, content=body, headers=_headers(body))

        assert response.status_code == 500
