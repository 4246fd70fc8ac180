"""
Script to run one delta load from FactInternetSales into InternetSales_Staging
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from core.config import settings
from core.database import source_session_scope
from core.exceptions import ETLException
from core.logging import setup_logging
from delta_load.runner import LoadRunner
from delta_load.sources import SqlSalesSource

logger = logging.getLogger(__name__)


async def run_load() -> int:
    """Run a single delta load. Returns the process exit code."""

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,
    )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    try:
        async with AsyncSessionLocal() as session:
            async with source_session_scope(session) as source_session:
                runner = LoadRunner(session, source=SqlSalesSource(source_session))
                result = await runner.run(note="run_load script")

        logger.info(
            f"Delta load completed: "
            f"Extracted={result['records_extracted']}, "
            f"Loaded={result['records_loaded']}, "
            f"Skipped={result['records_skipped']}, "
            f"Watermark={result['watermark_before']} -> {result['watermark_after']}"
        )
        return 0

    except ETLException as e:
        logger.error(f"Delta load failed: {e}")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_load()))
