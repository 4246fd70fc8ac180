"""
Health check endpoint with database, watermark and run status
"""

from datetime import datetime, timedelta
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse
from core.config import settings
from core.exceptions import ETLException
from delta_load.run_log import RunLogger
from delta_load.watermark import WatermarkTracker
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Current watermark (missing watermark means unhealthy)
    - Outcome of the most recent run
    - Number of runs stuck without a terminal log entry
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    watermark = None
    last_run = None
    orphaned = []

    if db_connected:
        try:
            watermark = await WatermarkTracker(db).read()
        except ETLException as e:
            logger.error(f"Watermark unavailable: {e.message}")

        try:
            run_logger = RunLogger(db)
            last_run = await run_logger.last_terminal()
            orphaned = await run_logger.find_orphaned_runs(
                timedelta(minutes=settings.ORPHAN_THRESHOLD_MINUTES)
            )
        except Exception as e:
            logger.error(f"Failed to read run log: {str(e)}")

    # Status is derived by HealthCheckResponse itself
    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        watermark=watermark,
        last_run_status=last_run.status if last_run else None,
        last_run_at=last_run.load_date if last_run else None,
        orphaned_runs=len(orphaned)
    )
