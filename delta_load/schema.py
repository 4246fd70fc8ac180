"""
Schema store: creates the load's relations and seeds their initial state
"""

from sqlalchemy import select, func, insert
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from models.base import Base
from models.load_tracking import load_tracking, load_lease, INITIAL_WATERMARK, DEFAULT_LEASE_NAME
from models.source import source_metadata
# Imported for its side effect of registering the table on Base.metadata
import models.load_log  # noqa: F401
import models.staging  # noqa: F401
import logging

logger = logging.getLogger(__name__)


async def create_schema(engine: AsyncEngine, with_source: bool = False) -> None:
    """
    Create staging, tracking, lease and log tables, then seed singletons.

    Args:
        engine: Destination database engine
        with_source: Also create FactInternetSales (development/test only)
    """
    async with engine.begin() as conn:
        logger.info("Creating delta load tables...")
        await conn.run_sync(Base.metadata.create_all)
        if with_source:
            logger.info("Creating FactInternetSales source table")
            await conn.run_sync(source_metadata.create_all)
        await seed_schema(conn)
    logger.info("Schema store ready")


async def seed_schema(conn: AsyncConnection, lease_name: str = DEFAULT_LEASE_NAME) -> None:
    """Insert the watermark and lease rows when they are missing"""
    tracking_rows = (
        await conn.execute(select(func.count()).select_from(load_tracking))
    ).scalar()
    if not tracking_rows:
        await conn.execute(insert(load_tracking).values(LastOrderDateKey=INITIAL_WATERMARK))
        logger.info(f"Seeded watermark with {INITIAL_WATERMARK}")

    lease_rows = (
        await conn.execute(
            select(func.count()).select_from(load_lease).where(load_lease.c.LeaseName == lease_name)
        )
    ).scalar()
    if not lease_rows:
        await conn.execute(insert(load_lease).values(LeaseName=lease_name, Holder=None))
        logger.info(f"Seeded run lease '{lease_name}'")


async def drop_schema(engine: AsyncEngine, with_source: bool = False) -> None:
    """Drop everything create_schema created"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        if with_source:
            await conn.run_sync(source_metadata.drop_all)
