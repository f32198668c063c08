"""
Clock helpers.

All timestamps are timezone-aware UTC and stored in ``timestamptz`` columns.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)
