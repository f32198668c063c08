"""
Database Configuration for the Marketplace Backend

Async SQLAlchemy engine and session management. One DatabaseManager is built
at application startup and kept on ``app.state.db``; request handlers and
background jobs reach it through that handle instead of a module global.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from marketplace.config.settings import Settings
from marketplace.infrastructure.exceptions import ConfigurationError

# Register every table on SQLModel.metadata
from marketplace.infrastructure.db import models  # noqa: F401


logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Force an async driver onto plain PostgreSQL URLs."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


class DatabaseManager:
    """
    Owns the async engine and session factory for one database.

    Args:
        database_url: SQLAlchemy URL (async driver)
        echo: Log emitted SQL
        pool_size: Connections kept open (ignored for SQLite)
        max_overflow: Extra connections allowed under load (ignored for SQLite)
        pool_timeout: Seconds to wait for a pooled connection (ignored for SQLite)
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
    ):
        self._url = normalize_database_url(database_url)

        if self._url.startswith("sqlite"):
            # A single shared connection so in-memory databases survive
            # across sessions
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        else:
            engine_kwargs = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
                "pool_pre_ping": True,
            }

        self._engine: Optional[AsyncEngine] = create_async_engine(
            self._url,
            echo=echo,
            **engine_kwargs,
        )
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseManager":
        """Build a manager from application settings."""
        if not settings.database_url:
            raise ConfigurationError(
                "DATABASE_URL is required",
                missing_keys=["DATABASE_URL"],
            )
        return cls(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_sqlite(self) -> bool:
        return self._url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager has been closed")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager has been closed")
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        One atomic unit of work.

        Commits when the block exits normally, rolls back and re-raises
        otherwise.

        Usage:
            async with db.session() as session:
                result = await session.execute(query)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Verify the database answers."""
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create all tables from SQLModel metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        """Close engine and dispose of connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


def get_db_manager(request: Request) -> DatabaseManager:
    """FastAPI dependency returning the manager built at startup."""
    return request.app.state.db


async def init_db(db: DatabaseManager) -> None:
    """Verify the connection works (called on app startup)."""
    await db.ping()
    logger.info("Database connection verified")


async def close_db(db: DatabaseManager) -> None:
    """Close database connection pool (called on app shutdown)."""
    await db.close()
    logger.info("Database connections closed")
