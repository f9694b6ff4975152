"""Database Session Manager — async engine, per-request sessions, readiness.

Invariants:
    - One AsyncSession per request; it is always closed, and rolled back if
      the request fails before the unit of work committed
    - SQLAlchemy exceptions leave this module only as DatabaseError
      (to_database_error); driver messages are logged, never returned
    - SQLite connections enforce foreign keys, like PostgreSQL does

Design Decisions:
    - Module-level db_manager set by the app lifespan; tests override get_db
    - expire_on_commit=False: records are built from rows after commit
    - Pool sizing only for server databases; SQLite keeps SQLAlchemy's default
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from stm.core.errors import DatabaseError

logger = logging.getLogger(__name__)


def to_database_error(exc: SQLAlchemyError, operation: str) -> DatabaseError:
    """Log the driver error and return the client-safe DatabaseError."""
    if isinstance(exc, IntegrityError):
        reason = "Integrity constraint violated"
    elif isinstance(exc, OperationalError):
        reason = "Connection or operational error"
    else:
        reason = "Database operation failed"
    logger.error(f"{reason} during {operation}: {exc}")
    return DatabaseError(reason, operation)


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseSessionManager:
    """Owns the engine and hands out sessions."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        is_sqlite = database_url.startswith("sqlite")
        engine_options = {"echo": echo, "pool_pre_ping": not is_sqlite}
        if not is_sqlite:
            engine_options.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_options)
        if is_sqlite:
            _enable_sqlite_foreign_keys(self.engine)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            raise to_database_error(e, "request") from e
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True if a trivial query succeeds."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except (DatabaseError, OSError) as e:
            logger.error(f"Database readiness check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
