"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import async_session_maker, source_session_scope
from delta_load.sources import SalesSource, SqlSalesSource


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session for one request"""
    async with async_session_maker() as session:
        yield session


async def get_source() -> AsyncGenerator[SalesSource, None]:
    """Source of sales rows for a manually triggered run"""
    async with async_session_maker() as session:
        async with source_session_scope(session) as source_session:
            yield SqlSalesSource(source_session)
