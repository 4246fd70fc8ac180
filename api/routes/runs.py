"""
Run log and manual trigger endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, get_source
from schemas.api import RunListResponse, RunTriggerResponse, LoadLogEntryInfo
from core.exceptions import ETLException, ConcurrentRunDetectedError
from delta_load.run_log import RunLogger
from delta_load.runner import LoadRunner
from delta_load.sources import SalesSource
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Runs"])


@router.get("/runs", response_model=RunListResponse)
async def list_runs(
    request: Request,
    limit: int = Query(20, ge=1, le=100, description="Number of log entries to return"),
    db: AsyncSession = Depends(get_db)
):
    """Most recent run log entries, newest first"""
    entries = await RunLogger(db).recent(limit)
    return RunListResponse(
        request_id=request.state.request_id,
        count=len(entries),
        entries=[LoadLogEntryInfo.model_validate(entry) for entry in entries]
    )


@router.post("/runs", response_model=RunTriggerResponse)
async def trigger_run(
    request: Request,
    db: AsyncSession = Depends(get_db),
    source: SalesSource = Depends(get_source)
):
    """
    Run one delta load now.

    Returns 409 while another run holds the lease and 500 when the run
    fails; the failure detail is also in the run log.
    """
    request_id = request.state.request_id
    logger.info(f"[{request_id}] POST /runs")

    runner = LoadRunner(db, source=source)
    try:
        result = await runner.run(note=f"api request {request_id}")
    except ConcurrentRunDetectedError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except ETLException as e:
        raise HTTPException(status_code=500, detail=e.to_dict())

    return RunTriggerResponse(request_id=request_id, **result)
