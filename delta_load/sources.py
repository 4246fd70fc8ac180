"""
Sources of sales rows for the incremental extractor
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional
import pandas as pd
from sqlalchemy import select, bindparam, Integer
from sqlalchemy.ext.asyncio import AsyncSession
from core.exceptions import SourceReadError
from models.source import fact_internet_sales
from models.staging import STAGING_COLUMNS
import logging

logger = logging.getLogger(__name__)


class SalesSource(ABC):
    """
    Abstract base class for sales sources.

    A source returns every record whose OrderDateKey is strictly greater
    than the given watermark. Record order is not significant.
    """

    name: str = "source"

    @abstractmethod
    async def fetch_since(self, since_exclusive: int) -> List[Dict[str, Any]]:
        """
        Fetch records newer than the watermark.

        Args:
            since_exclusive: Watermark; only records with a greater
                OrderDateKey are returned

        Returns:
            List of raw records keyed by source column name
        """
        pass

    async def reset(self) -> None:
        """Prepare for another attempt after a failed fetch"""
        pass


class SqlSalesSource(SalesSource):
    """
    Read FactInternetSales through SQLAlchemy.

    The watermark is always a bound parameter, never interpolated into the
    statement text, so the database can reuse one plan for every run.
    """

    name = fact_internet_sales.name

    def __init__(self, db_session: AsyncSession, table=fact_internet_sales):
        self.db = db_session
        self.table = table
        self.name = table.name
        self._statement = (
            select(*(table.c[column] for column in STAGING_COLUMNS))
            .where(table.c.OrderDateKey > bindparam("since_order_date_key", type_=Integer))
        )

    async def fetch_since(self, since_exclusive: int) -> List[Dict[str, Any]]:
        logger.info(f"Reading {self.name} rows with OrderDateKey > {since_exclusive}")
        result = await self.db.execute(
            self._statement,
            {"since_order_date_key": since_exclusive}
        )
        records = [dict(row) for row in result.mappings().all()]
        logger.info(f"Read {len(records)} records from {self.name}")
        return records

    async def reset(self) -> None:
        await self.db.rollback()


class CsvSalesSource(SalesSource):
    """
    Read a CSV export of FactInternetSales with pandas.

    Every column is read as text and left for projection to convert, so a
    malformed value becomes a rejected row instead of a failed read. Rows
    whose OrderDateKey is not numeric are passed through for the same
    reason.
    """

    def __init__(self, file_path: str, name: Optional[str] = None):
        self.file_path = Path(file_path)
        self.name = name or self.file_path.stem

    def read_all(self) -> List[Dict[str, Any]]:
        """Every record in the file, with blanks as None"""
        if not self.file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {self.file_path}")

        logger.info(f"Reading CSV from {self.file_path}")
        df = pd.read_csv(self.file_path, dtype=str, keep_default_na=True)

        # Strip whitespace around headers, keep their case
        df.columns = df.columns.str.strip()
        df = df.astype(object).where(pd.notna(df), None)

        return df.to_dict(orient="records")

    async def fetch_since(self, since_exclusive: int) -> List[Dict[str, Any]]:
        records = self.read_all()
        df = pd.DataFrame.from_records(records)
        if df.empty:
            return []

        if "OrderDateKey" not in df.columns:
            raise SourceReadError(
                f"CSV file has no OrderDateKey column: {self.file_path}",
                context={"columns": list(df.columns)}
            )

        order_date_keys = pd.to_numeric(df["OrderDateKey"], errors="coerce")
        mask = order_date_keys.isna() | (order_date_keys > since_exclusive)
        selected = [record for record, keep in zip(records, mask.tolist()) if keep]

        logger.info(f"Read {len(selected)} of {len(records)} records from {self.name}")
        return selected
