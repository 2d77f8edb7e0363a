"""
Database Session Factory
Creates async SQLAlchemy sessions with proper configuration
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)


class DatabaseSessionFactory:
    """
    Factory for creating async database sessions.

    Owns the async engine and the session maker.
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
    ) -> None:
        """
        Initialize session factory with database connection.

        Args:
            database_url: Async SQLAlchemy URL (postgresql+asyncpg, sqlite+aiosqlite in tests)
            echo: Whether to log SQL statements (debug mode)
            pool_size: Connection pool size
            max_overflow: Max overflow connections beyond pool_size
        """
        self.database_url = database_url
        self.echo = echo

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,  # Recycle connections after 1 hour
            )
        self.engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)

        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,  # Manual flushing for better control
        )

        logger.info(
            "Database session factory initialized",
            dialect=self.engine.dialect.name,
            pool_size=pool_size,
            max_overflow=max_overflow,
        )

    def create_session(self) -> AsyncSession:
        """Create a new session; the caller owns its lifecycle."""
        return self.session_factory()

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Async context manager for sessions.

        Usage:
            async with factory.get_session() as session:
                ...
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception as e:
                await session.rollback()
                logger.error("Session error, rolled back", error=str(e))
                raise

    async def dispose(self) -> None:
        """Close all connections and dispose of the engine."""
        await self.engine.dispose()
        logger.info("Database engine disposed")
