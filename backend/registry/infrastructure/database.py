"""Database Session Manager — one short-lived async session per identity store call.

Invariants:
    - Every session is named after the store operation that opened it; that name is
      what StorageError, the log line and the error envelope report
    - A storage failure rolls the session back; every session is closed on exit,
      which discards anything not yet committed
    - SQLAlchemy failures surface only as StorageError (core/errors.py); registry
      errors raised inside a session (e.g. ConflictError) pass through unchanged
    - pool_pre_ping on every engine: stale pooled connections are replaced, not reported

Design Decisions:
    - Singleton db_manager set by the FastAPI lifespan; routes reach it through
      get_db_manager, tests swap it through dependency_overrides
    - expire_on_commit=False: the store hands detached rows to services after the
      session is gone
    - SQLite URLs skip pool sizing: aiosqlite does not take the QueuePool arguments
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from registry.core.errors import StorageError

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are both DBAPIErrors.
_FAILURE_MESSAGES: tuple[tuple[type[SQLAlchemyError], str], ...] = (
    (IntegrityError, "Integrity constraint violated"),
    (OperationalError, "Connection or operational error"),
    (DBAPIError, "Database driver error"),
    (SQLAlchemyError, "Database operation failed"),
)


def _describe(error: SQLAlchemyError) -> str:
    return next(
        message for kind, message in _FAILURE_MESSAGES if isinstance(error, kind)
    )


class DatabaseSessionManager:
    """Owns the engine and hands out per-operation sessions to the identity store."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self, operation: str = "query") -> AsyncGenerator[AsyncSession, None]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Storage {operation} failed: {e}",
                extra={"operation": operation, "error_code": "STORAGE_ERROR"},
            )
            raise StorageError(_describe(e), operation) from e
        finally:
            await db.close()

    async def health_check(self) -> bool:
        """Readiness: True when a trivial query round-trips."""
        try:
            async with self.session("health_check") as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


def get_db_manager() -> DatabaseSessionManager:
    """FastAPI dependency: the process-wide manager the identity store is built on."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    return db_manager
