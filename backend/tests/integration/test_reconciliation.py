"""
Integration tests for the subscription reconciliation job.
"""

from datetime import datetime, timezone

import pytest
from sqlmodel import select

from marketplace.infrastructure.db.models import SubscriptionModel, TransactionModel
from marketplace.infrastructure.exceptions import GatewayError
from marketplace.infrastructure.services.reconciliation_service import ReconciliationService
from tests.conftest import OTHER_SELLER_ID, seed_subscription


def _invoice(payment_id, paid_at, amount=49900, status="paid"):
    return {
        "id": f"inv_{payment_id}",
        "payment_id": payment_id,
        "amount_paid": amount,
        "status": status,
        "paid_at": paid_at,
    }


async def _subscription(db, gateway_id="sub_1") -> SubscriptionModel:
    async with db.session() as session:
        result = await session.execute(
            select(SubscriptionModel).where(SubscriptionModel.gateway_subscription_id == gateway_id)
        )
        return result.scalar_one()


@pytest.fixture
def reconciler(subscription_service, mock_gateway) -> ReconciliationService:
    return ReconciliationService(subscription_service, mock_gateway)


class TestReconciliation:
    """Tests for ReconciliationService.run()."""

    @pytest.mark.asyncio
    async def test_missed_charge_is_applied_once(self, db, reconciler, mock_gateway):
        await seed_subscription(db, end_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        mock_gateway.fetch_subscription.return_value = {"id": "sub_1", "status": "active"}
        mock_gateway.list_invoices.return_value = [_invoice("pay_1", 1735689600)]

        first = await reconciler.run()
        second = await reconciler.run()

        assert first.checked == 1
        assert first.charges_applied == 1
        assert second.charges_applied == 0
        assert (await _subscription(db)).end_date == datetime(2025, 1, 31, tzinfo=timezone.utc)
        async with db.session() as session:
            rows = (await session.execute(select(TransactionModel))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_invoices_applied_oldest_first(self, db, reconciler, mock_gateway):
        await seed_subscription(db, end_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        mock_gateway.list_invoices.return_value = [
            _invoice("pay_2", 1738368000),
            _invoice("pay_1", 1735689600),
            _invoice("pay_open", None, status="issued"),
        ]

        report = await reconciler.run()

        assert report.charges_applied == 2
        subscription = await _subscription(db)
        assert subscription.end_date == datetime(2025, 3, 2, tzinfo=timezone.utc)
        assert subscription.last_payment_id == "pay_2"

    @pytest.mark.asyncio
    async def test_missed_halt(self, db, reconciler, mock_gateway):
        await seed_subscription(db)
        mock_gateway.fetch_subscription.return_value = {"id": "sub_1", "status": "halted"}

        report = await reconciler.run()

        assert report.status_changes == 1
        assert (await _subscription(db)).status == "INACTIVE"

    @pytest.mark.asyncio
    async def test_missed_cancellation(self, db, reconciler, mock_gateway):
        await seed_subscription(db)
        mock_gateway.fetch_subscription.return_value = {"id": "sub_1", "status": "cancelled"}

        await reconciler.run()

        assert (await _subscription(db)).status == "CANCELLED"

    @pytest.mark.asyncio
    async def test_cancelled_rows_are_skipped(self, db, reconciler, mock_gateway):
        await seed_subscription(db, status="CANCELLED")

        report = await reconciler.run()

        assert report.checked == 0
        mock_gateway.fetch_subscription.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gateway_failure_is_isolated(self, db, reconciler, mock_gateway):
        await seed_subscription(db, end_date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        await seed_subscription(
            db, owner_id=OTHER_SELLER_ID, gateway_subscription_id="sub_2", end_date=datetime(2025, 1, 1, tzinfo=timezone.utc)
        )

        async def fetch(gateway_id):
            if gateway_id == "sub_1":
                raise GatewayError("timeout", operation="subscription.fetch")
            return {"id": gateway_id, "status": "active"}

        async def invoices(gateway_id):
            return [_invoice(f"pay_{gateway_id}", 1735689600)]

        mock_gateway.fetch_subscription.side_effect = fetch
        mock_gateway.list_invoices.side_effect = invoices

        report = await reconciler.run()

        assert report.checked == 2
        assert report.failures == ["sub_1"]
        assert report.charges_applied == 1
        assert (await _subscription(db, "sub_1")).end_date == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert (await _subscription(db, "sub_2")).end_date == datetime(2025, 1, 31, tzinfo=timezone.utc)
