import argparse
import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.ext.asyncio import create_async_engine
from core.config import settings
from core.logging import setup_logging
from delta_load.schema import create_schema

logger = logging.getLogger(__name__)


async def init_database(with_source: bool = False):
    logger.info("Connecting to database...")
    engine = create_async_engine(settings.DATABASE_URL, echo=False)

    try:
        await create_schema(engine, with_source=with_source)
        logger.info("Tables created and seeded successfully.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create and seed the delta load tables")
    parser.add_argument(
        "--with-source",
        action="store_true",
        help="Also create FactInternetSales in the destination database (development only)"
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(init_database(with_source=args.with_source))
