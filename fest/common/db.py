"""Database configuration with lazy engine initialization.

The async engine is only created on first use, so importing models (for
Alembic or tests) never opens a connection.
"""

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from fest.common.config import get_settings

# Base class for all ORM models - this is safe to initialize at import time
Base = declarative_base()


@lru_cache(maxsize=1)
def get_async_engine():
    """
    Lazily create async engine on first database access.

    Uses NullPool so every request gets a fresh connection; the API is
    deployed behind serverless workers where pools do not survive.
    """
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        poolclass=NullPool,
    )


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker:
    return async_sessionmaker(
        bind=get_async_engine(),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides an async database session."""
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
