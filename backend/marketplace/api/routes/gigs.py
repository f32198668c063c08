"""
Gig API Routes

Publication is only allowed for sellers with an active subscription.
"""

from fastapi import APIRouter, status

from marketplace.api.dependencies import CurrentUserDep, GigServiceDep
from marketplace.domain.gig import CreateGigRequest, GigResponse


router = APIRouter()


@router.post("/gigs", response_model=GigResponse, status_code=status.HTTP_201_CREATED)
async def create_gig(request: CreateGigRequest, user: CurrentUserDep, service: GigServiceDep):
    """Publish a gig (403 without an active subscription)."""
    return await service.create(user.id, request)


@router.get("/gigs/{gig_id}", response_model=GigResponse)
async def get_gig(gig_id: str, service: GigServiceDep):
    return await service.get(gig_id)
