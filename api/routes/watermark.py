"""
Watermark endpoint
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from api.dependencies import get_db
from schemas.api import WatermarkResponse
from models.load_tracking import load_lease
from core.exceptions import NotInitializedError
from delta_load.watermark import WatermarkTracker

router = APIRouter(tags=["Watermark"])


@router.get("/watermark", response_model=WatermarkResponse)
async def get_watermark(db: AsyncSession = Depends(get_db)):
    """Current watermark and run lease holder"""
    try:
        watermark = await WatermarkTracker(db).read()
    except NotInitializedError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())

    lease = (
        await db.execute(select(load_lease.c.Holder, load_lease.c.ExpiresAt))
    ).first()

    return WatermarkResponse(
        last_order_date_key=watermark,
        lease_holder=lease.Holder if lease else None,
        lease_expires_at=lease.ExpiresAt if lease else None
    )
