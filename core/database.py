"""
Database session management with SQLAlchemy async
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
    poolclass=NullPool,  # For async, connection pooling handled differently
    future=True
)

# Create session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


@asynccontextmanager
async def source_session_scope(default_session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for reading FactInternetSales.

    Uses a dedicated engine when SOURCE_DATABASE_URL is set, otherwise the
    source lives next to staging and ``default_session`` is reused.
    """
    if not settings.SOURCE_DATABASE_URL:
        yield default_session
        return

    source_engine = create_async_engine(settings.SOURCE_DATABASE_URL, poolclass=NullPool, future=True)
    source_maker = async_sessionmaker(source_engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with source_maker() as session:
            yield session
    finally:
        await source_engine.dispose()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with async_session_maker() as session:
        yield session
