"""
Cron API Routes

Endpoints invoked by the scheduler, authenticated with CRON_SECRET.
"""

import logging

from fastapi import APIRouter, Depends, Query

from marketplace.api.dependencies import ReconciliationServiceDep, require_cron_secret


logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/cron/reconcile-subscriptions")
async def reconcile_subscriptions(
    service: ReconciliationServiceDep,
    limit: int = Query(default=500, ge=1, le=5000),
):
    """Replay gateway subscription state to repair missed webhooks."""
    report = await service.run(limit=limit)
    return {"status": "success", **report.to_dict()}
