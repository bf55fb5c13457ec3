"""ReqRelay database module.

- SQLAlchemy 2.x async engine and session factory (psycopg 3 driver)
- Alembic migrations under reqrelay/db/migrations
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from reqrelay.core.errors import DependencyUnavailableError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from reqrelay.core.config import DatabaseSettings

logger = logging.getLogger(__name__)


class Database:
    """Lifecycle-managed database handle owned by the server process.

    Usage:
        database = Database(settings.database)
        await database.connect()
        async with database.session() as session:
            ...
        await database.close()
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self.settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            msg = "Database is not connected"
            raise RuntimeError(msg)
        return self._engine

    async def connect(self) -> None:
        """Create the engine and verify connectivity with a trivial query.

        Raises:
            DependencyUnavailableError: If the database cannot be reached.
        """
        if self._engine is not None:
            return

        engine = create_async_engine(
            self.settings.driver_url,
            pool_size=self.settings.pool_size,
            max_overflow=self.settings.max_overflow,
            pool_timeout=self.settings.pool_timeout,
            pool_pre_ping=True,
            echo=self.settings.echo,
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.error("Database connection failed: %s", e)
            raise DependencyUnavailableError("database", f"Can't connect to database: {e}") from e

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Connected to database")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session, rolling back if the block raises."""
        if self._session_factory is None:
            msg = "Database session factory not initialized"
            raise RuntimeError(msg)

        session = self._session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection closed")


__all__ = ["Database"]
