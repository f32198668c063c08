"""
Gig Domain Models

Request/response DTOs for the gig publication endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class CreateGigRequest(BaseModel):
    """Request to publish a gig."""
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    price: Decimal = Field(..., ge=5, decimal_places=2)
    delivery_time_days: int = Field(default=3, ge=1, le=90)
    revisions_allowed: int = Field(default=1, ge=0, le=20)


class GigResponse(BaseModel):
    """Gig response model."""
    id: str
    seller_id: str
    title: str
    description: str
    price: Decimal
    delivery_time_days: int
    revisions_allowed: int
    is_active: bool
    rating: Optional[float] = None
    review_count: int = 0
    created_at: datetime
