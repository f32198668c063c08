#!/usr/bin/env python3
"""
Subscription Reconciliation Script

Compares every linked, non-cancelled seller subscription with the gateway and
replays missed charges and status changes. Safe to run repeatedly.
Run as a cron job or manually: python -m scripts.reconcile_subscriptions

Usage:
    python -m scripts.reconcile_subscriptions              # Up to 500 subscriptions
    python -m scripts.reconcile_subscriptions --limit 50   # Up to 50 subscriptions
"""

import asyncio
import argparse
import logging

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from marketplace.config.settings import settings
from marketplace.infrastructure.db.database import DatabaseManager, close_db, init_db
from marketplace.infrastructure.payments.razorpay_service import get_razorpay_service
from marketplace.infrastructure.services.notifier import Notifier
from marketplace.infrastructure.services.reconciliation_service import (
    ReconciliationReport,
    ReconciliationService,
)
from marketplace.infrastructure.services.subscription_service import SubscriptionService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def reconcile(limit: int = 500) -> ReconciliationReport:
    """
    Run one reconciliation pass with its own database manager.

    Args:
        limit: Maximum number of subscriptions to check

    Returns:
        ReconciliationReport
    """
    db = DatabaseManager.from_settings(settings)
    await init_db(db)
    try:
        gateway = get_razorpay_service()
        subscriptions = SubscriptionService(db, Notifier(db), gateway)
        return await ReconciliationService(subscriptions, gateway).run(limit=limit)
    finally:
        await close_db(db)


async def main():
    parser = argparse.ArgumentParser(description="Reconcile seller subscriptions with Razorpay")
    parser.add_argument(
        "--limit",
        type=int,
        default=500,
        help="Maximum number of subscriptions to check (default: 500)"
    )
    args = parser.parse_args()

    report = await reconcile(limit=args.limit)

    print("\n=== Reconciliation Complete ===")
    print(f"Checked: {report.checked}")
    print(f"Charges applied: {report.charges_applied}")
    print(f"Status changes: {report.status_changes}")
    print(f"Failures: {len(report.failures)}")


if __name__ == "__main__":
    asyncio.run(main())
