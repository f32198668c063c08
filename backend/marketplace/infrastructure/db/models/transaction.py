"""
Transaction (Ledger) Database Model

Append-only ledger of monetary events. A row is created at most once per
real-world charge: (gateway, external_payment_id) is unique, and later events
for the same payment only update its status.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Column, UniqueConstraint
from sqlmodel import Field

from marketplace.infrastructure.db.models.base import IDMixin, JSONType, TimestampMixin


class TransactionType(str, Enum):
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    PAYOUT = "PAYOUT"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TransactionModel(IDMixin, TimestampMixin, table=True):
    """Ledger row."""

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("gateway", "external_payment_id", name="uq_transactions_gateway_payment"),
    )

    gateway: str = Field(default="razorpay", max_length=32, nullable=False)
    external_payment_id: str = Field(max_length=255, nullable=False, index=True)
    owner_id: str = Field(index=True, nullable=False, max_length=64)

    subscription_id: Optional[str] = Field(default=None, foreign_key="subscriptions.id", index=True)
    order_id: Optional[str] = Field(default=None, foreign_key="orders.id", index=True)

    amount: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    platform_fee: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    type: str = Field(default=TransactionType.PAYMENT.value, max_length=20)
    status: str = Field(default=TransactionStatus.PENDING.value, max_length=20, index=True)
    description: Optional[str] = Field(default=None, max_length=500)

    # Billing end date granted by this charge; set once, marks the charge as applied
    applied_period_end: Optional[datetime] = Field(default=None)

    event_data: Optional[dict] = Field(
        default=None,
        sa_column=Column(JSONType, nullable=True),
        description="Originating event type and raw gateway entity"
    )
