"""Database engine, session management, schema initialization and resilience utilities."""

import asyncio
from collections.abc import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import settings
from .logger import logger

# Base class for ORM models
Base = declarative_base()


# ==================== Engine Setup ====================

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ships with foreign keys off; ON DELETE CASCADE needs them on."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine, enabling foreign key enforcement on SQLite."""
    engine = create_async_engine(url, pool_pre_ping=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine(settings.DB_URL, echo=settings.DB_ECHO)

logger.info(f"Database engine configured: dialect={engine.dialect.name}")

# Session factory for creating database sessions
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request."""
    async with async_session() as session:
        yield session


# ==================== Schema Initialization ====================

async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create the users and ideas tables and their index if they do not exist.

    Safe to run on every start: create_all only emits CREATE for missing
    tables and indexes. Errors propagate so a broken store aborts startup.
    """
    from . import models  # noqa: F401  registers tables on Base.metadata

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database schema ready: tables={sorted(Base.metadata.tables)}")


# ==================== Database Resilience ====================


async def retry_on_db_error(func, max_retries: int = 3, base_delay: float = 0.5):
    """Retry database operations with exponential backoff.

    Only connection-type failures are retried. Used for read-only probes;
    idea and credential writes are single-shot.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubles each retry)

    Returns:
        Result of the function call

    Raises:
        Last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max_retries):
        try:
            return await func()
        except (OperationalError, DBAPIError) as e:
            last_exception = e

            error_msg = str(e).lower()
            is_retryable = any(marker in error_msg for marker in (
                "connection",
                "timeout",
                "database is locked",
                "server closed the connection",
            ))

            if not is_retryable or attempt == max_retries - 1:
                logger.error(
                    f"Database operation failed (attempt {attempt + 1}/{max_retries}): {str(e)}",
                    exc_info=True
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"Database error on attempt {attempt + 1}/{max_retries}, "
                f"retrying in {delay}s: {str(e)}"
            )
            await asyncio.sleep(delay)

    raise last_exception


async def check_db_connection(session: AsyncSession) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async def _check():
            await session.execute(text("SELECT 1"))

        await retry_on_db_error(_check, max_retries=2, base_delay=0.1)
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False

# ==================== Cleanup ====================

async def dispose_engine():
    """Close all pooled connections during application shutdown."""
    logger.info("Disposing database engine and closing connections")
    try:
        await engine.dispose()
        logger.info("Database connections closed successfully")
    except Exception as e:
        logger.error(f"Error disposing database engine: {str(e)}", exc_info=True)
