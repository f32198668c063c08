"""
Test configuration and fixtures for the marketplace backend.

Provides an in-memory SQLite database, service instances wired to it, an
HTTP client over the real application, and helpers for signing webhooks and
issuing JWTs.
"""

import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from marketplace.config.settings import Settings, get_settings
from marketplace.domain.clock import utcnow
from marketplace.infrastructure.db.database import DatabaseManager
from marketplace.infrastructure.db.models import GigModel, SubscriptionModel
from marketplace.infrastructure.payments.razorpay_service import (
    RazorpayService,
    get_razorpay_service,
)
from marketplace.infrastructure.services.notifier import Notifier
from marketplace.infrastructure.services.order_service import OrderService
from marketplace.infrastructure.services.subscription_service import SubscriptionService


WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "test-jwt-secret"
CRON_SECRET = "cron-test-secret"

BUYER_ID = "user_buyer"
SELLER_ID = "user_seller"
OTHER_SELLER_ID = "user_other_seller"
ADMIN_ID = "user_admin"


# =============================================================================
# Helpers
# =============================================================================

def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Signature the gateway would send for this body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def make_token(user_id: str, role: Optional[str] = None, expires_in: int = 3600) -> str:
    payload = {"sub": user_id, "exp": int(time.time()) + expires_in}
    if role:
        payload["role"] = role
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def auth(user_id: str, role: Optional[str] = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


def charged_body(
    subscription_id: str = "sub_1",
    payment_id: str = "pay_1",
    amount: int = 9900,
    status: str = "captured",
    plan_id: str = "plan_yearly",
) -> bytes:
    return json.dumps({
        "event": "subscription.charged",
        "payload": {
            "subscription": {"entity": {"id": subscription_id, "plan_id": plan_id}},
            "payment": {"entity": {"id": payment_id, "amount": amount, "status": status}},
        },
    }).encode()


async def seed_subscription(db: DatabaseManager, **overrides) -> SubscriptionModel:
    values = {
        "owner_id": SELLER_ID,
        "tier": "TIER1",
        "status": "ACTIVE",
        "billing_cycle": "MONTHLY",
        "start_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "end_date": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "gateway_subscription_id": "sub_1",
        "gateway_plan_id": "plan_monthly",
    }
    values.update(overrides)
    subscription = SubscriptionModel(**values)
    async with db.session() as session:
        session.add(subscription)
    return subscription


async def seed_gig(db: DatabaseManager, **overrides) -> GigModel:
    values = {
        "seller_id": SELLER_ID,
        "title": "Logo design",
        "description": "A clean vector logo for your brand",
        "price": Decimal("50.00"),
        "delivery_time_days": 3,
        "revisions_allowed": 2,
    }
    values.update(overrides)
    gig = GigModel(**values)
    async with db.session() as session:
        session.add(gig)
    return gig


async def seed_active_seller(db: DatabaseManager, owner_id: str = SELLER_ID) -> SubscriptionModel:
    """A seller whose subscription is paid well into the future."""
    return await seed_subscription(
        db,
        owner_id=owner_id,
        gateway_subscription_id=f"sub_{owner_id}",
        end_date=utcnow() + timedelta(days=20),
    )


# =============================================================================
# Settings & Infrastructure Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        environment="testing",
        jwt_secret=JWT_SECRET,
        razorpay_webhook_secret=WEBHOOK_SECRET,
        razorpay_plan_ids={"TIER1:MONTHLY": "plan_monthly", "TIER1:YEARLY": "plan_yearly"},
        cron_secret=CRON_SECRET,
        platform_fee_percentage=10.0,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
async def db() -> AsyncGenerator[DatabaseManager, None]:
    """Fresh in-memory database per test."""
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def mock_gateway():
    """Mock for RazorpayService."""
    mock = MagicMock(spec=RazorpayService)
    mock.create_subscription = AsyncMock(return_value={
        "id": "sub_new",
        "plan_id": "plan_monthly",
        "status": "created",
        "short_url": "https://rzp.io/i/test",
    })
    mock.cancel_subscription = AsyncMock(return_value={"status": "cancelled"})
    mock.fetch_subscription = AsyncMock(return_value={"id": "sub_1", "status": "active"})
    mock.list_invoices = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def notifier(db) -> Notifier:
    return Notifier(db)


@pytest.fixture
def subscription_service(db, notifier, mock_gateway) -> SubscriptionService:
    return SubscriptionService(db, notifier, mock_gateway)


@pytest.fixture
def order_service(db, notifier) -> OrderService:
    return OrderService(db, notifier, platform_fee_percentage=10.0)


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(db, settings, mock_gateway):
    """The FastAPI application wired to the test database."""
    from marketplace.main import create_app

    application = create_app(db=db)
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_razorpay_service] = lambda: mock_gateway
    return application


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
