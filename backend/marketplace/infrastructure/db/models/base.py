"""
Base Model for SQLModel ORM

Provides common fields and column types for all database models.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from marketplace.domain.clock import utcnow


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Primary keys are UUID4 strings."""
    return str(uuid4())


class TimestampMixin(SQLModel):
    """
    Mixin providing timestamp fields for models.
    """

    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        description="Record creation timestamp (UTC)"
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": utcnow},
        description="Last update timestamp (UTC)"
    )


class IDMixin(SQLModel):
    """
    Mixin providing a UUID string primary key.
    """

    id: str = Field(
        default_factory=new_id,
        primary_key=True,
        max_length=36,
        description="Unique identifier (UUID v4)"
    )
