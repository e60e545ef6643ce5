"""Database Session Manager — async engine and sessions for the durable ledger.

Invariants:
    - Created only when LEDGER_BACKEND=database; one manager per app
    - A session that raises is rolled back and closed; SQLAlchemy failures
      reach callers as DatabaseError (core/errors.py)
    - An IntegrityError caught inside the block never reaches the manager
      (DatabaseLedger treats it as "already present")
    - SQLite URLs get no pool sizing; other backends get a pre-pinged,
      recycled pool

Design Decisions:
    - expire_on_commit=False: ledger rows are read after commit without reloading
    - create_all() for SQLite and local runs; deployed databases use alembic
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from eduair.core.errors import DatabaseError
from eduair.db.base import Base

logger = logging.getLogger(__name__)

# Most specific first
_OPERATIONS: tuple[tuple[type[SQLAlchemyError], str], ...] = (
    (IntegrityError, "commit"),
    (OperationalError, "connect"),
    (DBAPIError, "query"),
    (SQLAlchemyError, "session"),
)


def create_engine_for(
    database_url: str, pool_size: int = 20, max_overflow: int = 10,
) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


class DatabaseSessionManager:

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_engine_for(database_url, pool_size, max_overflow)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                operation = next(op for cls, op in _OPERATIONS if isinstance(e, cls))
                logger.error(
                    f"Ledger database {operation} failed: {type(e).__name__}",
                    extra={"error_code": "DATABASE_ERROR"},
                )
                raise DatabaseError(type(e).__name__, operation) from e

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        """True when a trivial query succeeds (readiness probe)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except (DatabaseError, OSError) as e:
            logger.warning(f"Ledger database not reachable: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()
