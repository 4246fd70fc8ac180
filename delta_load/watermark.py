"""
Watermark tracker for the Internet Sales delta load.

The watermark is the highest OrderDateKey already staged. It lives in the
single row of InternetSales_LoadTracking, is read before extraction and is
advanced once per successful run. It never decreases.
"""

from typing import Optional
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from models.load_tracking import load_tracking
from models.staging import internet_sales_staging
from core.exceptions import NotInitializedError, WatermarkError, WriteConflictError
import logging

logger = logging.getLogger(__name__)


class WatermarkTracker:
    """
    Read and advance the singleton watermark.

    Concurrency:
    - advance() is a conditional UPDATE on the value read at run start, so a
      writer that moved the watermark in between is detected instead of
      overwritten
    - Runs are serialised by RunLease; the conditional update is the
      second line of defence
    """

    def __init__(self, db_session: AsyncSession, autocommit: bool = True):
        self.db = db_session
        self.autocommit = autocommit

    async def read(self) -> int:
        """
        Return the current watermark.

        Raises:
            NotInitializedError: If the singleton row is missing
            WatermarkError: If the tracking table holds more than one row
        """
        result = await self.db.execute(select(load_tracking.c.LastOrderDateKey))
        values = result.scalars().all()

        if not values:
            raise NotInitializedError(
                "Watermark row is missing; run scripts/init_db.py to repair the schema",
                context={"table_name": load_tracking.name, "operation": "read"}
            )
        if len(values) > 1:
            raise WatermarkError(
                f"Tracking table holds {len(values)} rows, expected exactly one",
                context={"table_name": load_tracking.name, "operation": "read"}
            )

        return int(values[0])

    async def advance(self, candidate: Optional[int], expected: Optional[int] = None) -> Optional[int]:
        """
        Move the watermark to ``candidate``.

        Args:
            candidate: Highest OrderDateKey staged by the run, or None when the
                run staged nothing (the watermark is then left alone)
            expected: Watermark value the run started from; the update only
                applies while the stored value still equals it

        Returns:
            The stored watermark after the call, or None if nothing was written

        Raises:
            WriteConflictError: If the stored value no longer matches
        """
        if candidate is None:
            logger.info("No rows staged; watermark unchanged")
            return None

        current = expected if expected is not None else await self.read()

        if candidate < current:
            logger.warning(
                f"Ignoring watermark candidate {candidate} below current value {current}"
            )
            return current

        if candidate == current:
            return current

        result = await self.db.execute(
            update(load_tracking)
            .where(load_tracking.c.LastOrderDateKey == current)
            .values(LastOrderDateKey=candidate)
        )

        if result.rowcount == 0:
            raise WriteConflictError(
                "Watermark changed while the run was in progress",
                context={
                    "table_name": load_tracking.name,
                    "operation": "advance",
                    "expected": current,
                    "candidate": candidate
                }
            )
        if result.rowcount > 1:
            await self.db.rollback()
            raise WatermarkError(
                f"Watermark update touched {result.rowcount} rows, expected exactly one",
                context={"table_name": load_tracking.name, "operation": "advance"}
            )

        if self.autocommit:
            await self.db.commit()

        logger.info(f"Watermark advanced {current} -> {candidate}")
        return candidate

    async def recompute_from_staging(self) -> Optional[int]:
        """
        Advance the watermark to the largest OrderDateKey in staging.

        No-op when staging is empty.
        """
        result = await self.db.execute(
            select(func.max(internet_sales_staging.c.OrderDateKey))
        )
        max_key = result.scalar()

        if max_key is None:
            logger.info("Staging is empty; watermark unchanged")
            return None

        return await self.advance(int(max_key))
