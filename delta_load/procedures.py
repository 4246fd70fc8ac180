"""
Thin procedure wrappers for host job runners.

Each call performs one statement-level operation and commits:
    insert_log(status, message)       -> LogID of the new entry
    get_watermark()                   -> current LastOrderDateKey
    update_watermark_from_staging()   -> new watermark, None if staging is empty
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from delta_load.run_log import RunLogger
from delta_load.watermark import WatermarkTracker


async def insert_log(
    db_session: AsyncSession,
    status: str,
    message: Optional[str] = None,
    run_id: Optional[str] = None
) -> int:
    entry = await RunLogger(db_session).insert_log(status, message, run_id=run_id)
    return entry.log_id


async def get_watermark(db_session: AsyncSession) -> int:
    return await WatermarkTracker(db_session).read()


async def update_watermark_from_staging(db_session: AsyncSession) -> Optional[int]:
    return await WatermarkTracker(db_session).recompute_from_staging()
