"""
Notification API Routes
"""

from fastapi import APIRouter, Query

from marketplace.api.dependencies import CurrentUserDep, NotifierDep
from marketplace.domain.notification import (
    MarkReadRequest,
    NotificationResponse,
    UnreadCountResponse,
)


router = APIRouter()


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    user: CurrentUserDep,
    notifier: NotifierDep,
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = False,
):
    """Newest notifications of the caller."""
    return await notifier.list_for_user(user.id, limit=limit, unread_only=unread_only)


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(user: CurrentUserDep, notifier: NotifierDep):
    return UnreadCountResponse(unread=await notifier.unread_count(user.id))


@router.post("/notifications/mark-read")
async def mark_read(request: MarkReadRequest, user: CurrentUserDep, notifier: NotifierDep):
    """Mark the given notifications read, or all of them when no ids are sent."""
    updated = await notifier.mark_read(user.id, request.ids)
    return {"updated": updated}
