"""
Pytest configuration and fixtures
"""

import os

# Settings are read at import time; point them at SQLite before any project import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

import asyncio
import pytest
import pytest_asyncio
from decimal import Decimal
from typing import AsyncGenerator, Any, Dict, List
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from delta_load.schema import create_schema, drop_schema
from delta_load.sources import SalesSource
from models.source import fact_internet_sales


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine backed by a throwaway SQLite file"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'delta_load.db'}",
        echo=False,
    )

    await create_schema(engine, with_source=True)

    yield engine

    await drop_schema(engine, with_source=True)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


def sales_row(order_date_key, number=None, amount="100.00", line=1) -> Dict[str, Any]:
    """One FactInternetSales record"""
    return {
        "SalesOrderNumber": number or f"SO{order_date_key}",
        "SalesOrderLineNumber": line,
        "CustomerKey": 11000 + (order_date_key % 1000),
        "ProductKey": 310,
        "OrderDateKey": order_date_key,
        "SalesAmount": amount,
    }


class FakeSalesSource(SalesSource):
    """
    In-memory source for tests.

    Honours the watermark filter like the SQL source, and can be told to
    fail a number of reads or to stall.
    """

    name = "fake_sales"

    def __init__(self, records: List[Dict[str, Any]] = None, fail_times: int = 0, error=None, delay: float = 0):
        self.records = records or []
        self.fail_times = fail_times
        self.error = error
        self.delay = delay
        self.calls = 0
        self.resets = 0

    async def fetch_since(self, since_exclusive: int) -> List[Dict[str, Any]]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.fail_times:
            raise self.error
        return [dict(r) for r in self.records if _order_key(r) is None or _order_key(r) > since_exclusive]

    async def reset(self) -> None:
        self.resets += 1


def _order_key(record):
    try:
        return int(record["OrderDateKey"])
    except (TypeError, ValueError, KeyError):
        return None


@pytest.fixture
def seed_fact_rows(db_session):
    """Insert rows into FactInternetSales and commit"""

    async def _seed(*order_date_keys, amount="100.00"):
        rows = [sales_row(key, amount=Decimal(amount)) for key in order_date_keys]
        await db_session.execute(insert(fact_internet_sales), rows)
        await db_session.commit()
        return rows

    return _seed
