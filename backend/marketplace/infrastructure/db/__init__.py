"""
Database Infrastructure Package for the Marketplace Backend

Exports database utilities and dependencies.
"""

from marketplace.infrastructure.db.database import (
    DatabaseManager,
    close_db,
    get_db_manager,
    init_db,
    normalize_database_url,
)
from marketplace.infrastructure.db.dependencies import DatabaseDep


__all__ = [
    # Database management
    "DatabaseManager",
    "normalize_database_url",
    "get_db_manager",
    "init_db",
    "close_db",
    # Dependencies
    "DatabaseDep",
]
