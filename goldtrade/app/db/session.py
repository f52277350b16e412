"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support for PostgreSQL.
"""

import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError
from goldtrade.app.core.config import settings
from goldtrade.app.core.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

engine_kwargs = {"echo": settings.db_echo, "future": True}
if not settings.database_url.startswith("sqlite"):
    engine_kwargs.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )

engine = create_async_engine(settings.database_url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession):
    """
    Run a block of ledger writes as one database transaction.

    Commits when the block exits cleanly and rolls back on any error.
    A version-counter mismatch on a balance row surfaces as
    ConcurrencyConflictError.
    """
    try:
        yield db
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("Concurrent ledger update detected: %s", exc)
        raise ConcurrencyConflictError() from exc
    except BaseException:
        await db.rollback()
        raise


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
