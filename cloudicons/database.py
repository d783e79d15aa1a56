"""Async database engine, session management and retrying execution.

Uses SQLAlchemy 2.0 async with the asyncpg driver. Every read goes through
run_with_retry, which opens one session per attempt so the pooled
connection goes back to the pool whichever way the attempt ends.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from cloudicons.config import Settings
from cloudicons.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the engine with a bounded connection pool."""
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)

    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        connect_args={"timeout": settings.db_connect_timeout},
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> bool:
    """Create tables if they don't exist. Returns True on success."""
    from cloudicons.models import Base

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
        return True
    except Exception as e:
        logger.warning("Database unavailable — serving from catalog file: %s", str(e)[:200])
        return False


async def close_db(engine: AsyncEngine) -> None:
    """Dispose engine connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")


def retry_delay(attempt: int, base_delay: float, backoff: str) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    if backoff == "exponential":
        return random.uniform(0, base_delay * 2 ** (attempt - 1))
    return base_delay


async def run_with_retry(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: str = "fixed",
    label: str = "query",
) -> T:
    """Run `operation` in a fresh session, retrying on database errors.

    Raises StoreUnavailableError (chained to the last error) once
    `max_attempts` attempts have failed.
    """
    last_error: BaseException | None = None
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            async with session_factory() as session:
                return await operation(session)
        except RETRYABLE_ERRORS as e:
            last_error = e
            logger.warning(
                "DB %s failed | attempt=%d/%d | %s",
                label, attempt, attempts, str(e)[:200],
            )
            if attempt < attempts:
                await asyncio.sleep(retry_delay(attempt, delay, backoff))

    logger.error("DB %s failed after %d attempts", label, attempts)
    raise StoreUnavailableError(f"Database {label} failed after {attempts} attempts") from last_error
