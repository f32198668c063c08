"""
Review Database Model
"""

from typing import Optional

from sqlalchemy import CheckConstraint, Column, Text
from sqlmodel import Field

from marketplace.infrastructure.db.models.base import IDMixin, TimestampMixin


class ReviewModel(IDMixin, TimestampMixin, table=True):
    """Buyer review of a completed order. One per order."""

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )

    order_id: str = Field(foreign_key="orders.id", unique=True, nullable=False)
    gig_id: str = Field(foreign_key="gigs.id", index=True, nullable=False)
    reviewer_id: str = Field(index=True, nullable=False, max_length=64)
    reviewee_id: str = Field(index=True, nullable=False, max_length=64)

    rating: int = Field(nullable=False)
    comment: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
