"""
Order Database Model

SQLModel table for buyer orders placed against gigs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field

from marketplace.domain.order import OrderStatus
from marketplace.infrastructure.db.models.base import IDMixin, JSONType, TimestampMixin


class OrderModel(IDMixin, TimestampMixin, table=True):
    """
    Order row.

    due_date is fixed at creation; deliverables only ever grow.
    """

    __tablename__ = "orders"

    gig_id: str = Field(foreign_key="gigs.id", index=True, nullable=False)
    buyer_id: str = Field(index=True, nullable=False, max_length=64)
    seller_id: str = Field(index=True, nullable=False, max_length=64)

    price: Decimal = Field(max_digits=12, decimal_places=2)
    platform_fee: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    requirements: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))

    status: str = Field(default=OrderStatus.PENDING.value, max_length=20, index=True)
    progress: int = Field(default=0)

    deliverables: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSONType, nullable=False),
    )
    revisions_used: int = Field(default=0)
    revisions_allowed: int = Field(default=1)

    due_date: datetime = Field(nullable=False)
    delivered_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)
