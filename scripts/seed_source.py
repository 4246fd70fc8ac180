"""
Load a CSV export of FactInternetSales into the source table.

Development helper: the production source is owned by the warehouse.

    python scripts/seed_source.py data/fact_internet_sales.csv
"""

import argparse
import asyncio
import sys
import os
import logging
from decimal import Decimal

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine
from core.config import settings
from core.logging import setup_logging
from delta_load.sources import CsvSalesSource
from models.source import fact_internet_sales, source_metadata

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = [column.name for column in fact_internet_sales.columns]


def to_source_rows(records):
    """Convert CSV text values to the FactInternetSales column types"""
    rows = []
    for record in records:
        row = {}
        for column in SOURCE_COLUMNS:
            value = record.get(column)
            if value is None:
                row[column] = None
            elif column == "SalesAmount":
                row[column] = Decimal(value)
            elif column == "SalesOrderNumber":
                row[column] = value.strip()
            else:
                row[column] = int(value)
        rows.append(row)
    return rows


async def seed_source(file_path: str, batch_size: int):
    url = settings.SOURCE_DATABASE_URL or settings.DATABASE_URL
    engine = create_async_engine(url, echo=False)

    rows = to_source_rows(CsvSalesSource(file_path).read_all())
    logger.info(f"Seeding {len(rows)} rows into {fact_internet_sales.name}")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(source_metadata.create_all)
            for start in range(0, len(rows), batch_size):
                await conn.execute(insert(fact_internet_sales), rows[start:start + batch_size])
        logger.info("Source table seeded successfully.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed FactInternetSales from a CSV file")
    parser.add_argument("file_path")
    parser.add_argument("--batch-size", type=int, default=settings.ETL_BATCH_SIZE)
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed_source(args.file_path, args.batch_size))
