"""
Async Database Engine & Session Factory
========================================
This module sets up the async SQLAlchemy engine and provides:
  - `async_engine`: the connection pool to the database
  - `AsyncSessionLocal`: a session factory for creating DB sessions

The RecordStore (services/record_store.py) takes a session factory, so tests
can hand it one bound to an in-memory SQLite engine instead.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from bodyfat_tracker.core.config import settings


def build_engine(url: str):
    """Create the async engine; pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,        # Persistent connections in the pool
        max_overflow=settings.DB_MAX_OVERFLOW,  # Extra connections allowed under load
    )


async_engine = build_engine(settings.DATABASE_URL)

# expire_on_commit=False prevents attributes from being expired after commit,
# which avoids extra lazy-load queries in async context.
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.
    All models inherit from this to share the same metadata registry.
    """
    pass

