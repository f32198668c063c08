"""
Gig Database Model

Minimal gig table: only the fields orders and reviews depend on.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field

from marketplace.infrastructure.db.models.base import IDMixin, TimestampMixin


class GigModel(IDMixin, TimestampMixin, table=True):
    """Seller gig."""

    __tablename__ = "gigs"

    seller_id: str = Field(index=True, nullable=False, max_length=64)
    title: str = Field(max_length=200)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    price: Decimal = Field(max_digits=12, decimal_places=2)
    delivery_time_days: int = Field(default=3)
    revisions_allowed: int = Field(default=1)
    is_active: bool = Field(default=True, index=True)

    # Review aggregates, maintained when a review is written
    rating: Optional[float] = Field(default=None)
    review_count: int = Field(default=0)
