# ============================================================================
# File: delta_load/runner.py
# Description: Orchestrates one watermark-based delta load run
# ============================================================================
"""
Load Runner - sequences lease, run log, watermark and extractor into one run.

Run lifecycle:
    IDLE -> RUNNING -> SUCCEEDED
                    -> FAILED

1. Acquire the run lease (a held lease fails the run with a single Failed entry)
2. Log Started
3. Read the watermark, extract, advance the watermark (bounded by the run timeout)
4. Log Succeeded with the row counts

Any fault in step 3 rolls back the session, logs Failed with the error detail
and re-raises. The watermark only moves after the extract step finished
without fault. Staging batches committed before a fault stay in place unless
transactional staging is enabled.
"""

from typing import Dict, Any, Optional
import asyncio
import enum
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from delta_load.extractor import IncrementalExtractor, ExtractResult
from delta_load.lease import RunLease
from delta_load.run_log import RunLogger, RunHandle
from delta_load.sources import SalesSource, SqlSalesSource
from delta_load.watermark import WatermarkTracker
from models.base import LoadStatus
from core.config import settings
from core.logging import current_run_id
from core.exceptions import (
    ETLException,
    DestinationWriteError,
    RunLogError,
    RunStateError,
    RunTimeoutError,
    RunCancelledError,
)

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    RunState.IDLE: {RunState.RUNNING, RunState.FAILED},
    RunState.RUNNING: {RunState.SUCCEEDED, RunState.FAILED},
    RunState.SUCCEEDED: set(),
    RunState.FAILED: set(),
}


class LoadRunner:
    """
    Delta load orchestrator.

    Responsibilities:
    - Guarantee at most one concurrent run (lease)
    - Guarantee a terminal log entry for every Started entry
    - Advance the watermark only after a fault-free extract
    - Enforce the run timeout and honour cancellation

    One instance drives exactly one run.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        source: Optional[SalesSource] = None,
        extractor: Optional[IncrementalExtractor] = None,
        tracker: Optional[WatermarkTracker] = None,
        run_logger: Optional[RunLogger] = None,
        lease: Optional[RunLease] = None,
        timeout_seconds: Optional[float] = None,
        transactional: Optional[bool] = None
    ):
        self.db = db_session
        self.transactional = (
            transactional if transactional is not None else settings.STAGING_TRANSACTIONAL
        )
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.RUN_TIMEOUT_SECONDS
        )
        self.tracker = tracker or WatermarkTracker(db_session, autocommit=not self.transactional)
        self.run_logger = run_logger or RunLogger(db_session)
        self.lease = lease or RunLease(db_session)
        self.extractor = extractor or IncrementalExtractor(
            db_session,
            source or SqlSalesSource(db_session),
            transactional=self.transactional
        )

        self.state = RunState.IDLE
        self.run_id: Optional[str] = None

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RunStateError(
                f"Invalid run transition {self.state.value} -> {new_state.value}",
                context={"run_id": self.run_id}
            )
        logger.debug(f"Run {self.run_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    async def run(
        self,
        note: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """
        Execute one delta load run.

        Args:
            note: Free text stored on the Started entry (e.g. "scheduled")
            cancel_event: Setting this event aborts the extract step

        Returns:
            Dictionary with run statistics:
            - status: "success"
            - run_id: Identifier carried by the run's log entries
            - records_extracted / records_loaded / records_skipped
            - watermark_before / watermark_after
            - rejected: Rejected rows with their causes

        Raises:
            ConcurrentRunDetectedError: Another run holds the lease
            RunTimeoutError / RunCancelledError: Run aborted
            RunLogError: A log write failed
            ETLException: Any other failure, after the Failed entry is written
        """
        if self.state is not RunState.IDLE:
            raise RunStateError(
                "A LoadRunner drives a single run; create a new instance",
                context={"run_id": self.run_id, "state": self.state.value}
            )

        self.run_id = str(uuid.uuid4())
        run_id_token = current_run_id.set(self.run_id)

        try:
            try:
                await self.lease.acquire(self.run_id)
            except ETLException as e:
                logger.error(f"Run {self.run_id} could not start: {e.message}")
                self._transition(RunState.FAILED)
                await self._log_rejected_start(e)
                raise

            try:
                return await self._run_with_lease(note, cancel_event)
            finally:
                await self._release_lease()
        finally:
            current_run_id.reset(run_id_token)

    async def _run_with_lease(
        self,
        note: Optional[str],
        cancel_event: Optional[asyncio.Event]
    ) -> Dict[str, Any]:
        handle = await self.run_logger.log_started(note=note, run_id=self.run_id)
        self._transition(RunState.RUNNING)

        try:
            result, watermark_before, watermark_after = await asyncio.wait_for(
                self._load(cancel_event),
                timeout=self.timeout_seconds
            )

        except asyncio.CancelledError:
            await self._fail(
                handle,
                RunCancelledError("Run task was cancelled", context={"run_id": self.run_id})
            )
            raise

        except asyncio.TimeoutError as e:
            error = RunTimeoutError(
                f"Run exceeded its timeout of {self.timeout_seconds} seconds",
                context={"run_id": self.run_id, "timeout_seconds": self.timeout_seconds},
                original_exception=e
            )
            await self._fail(handle, error)
            raise error

        except ETLException as e:
            await self._fail(handle, e)
            raise

        except Exception as e:
            logger.exception("Unexpected error in delta load")
            error = ETLException(
                "Unexpected error in delta load",
                context={"run_id": self.run_id},
                original_exception=e
            )
            await self._fail(handle, error)
            raise error

        message = self._summarize(result, watermark_before, watermark_after)
        try:
            await self.run_logger.log_succeeded(handle, message)
        except RunLogError:
            self._transition(RunState.FAILED)
            raise
        self._transition(RunState.SUCCEEDED)

        logger.info(f"Run {self.run_id} succeeded: {message}")

        return {
            "status": "success",
            "run_id": self.run_id,
            "records_extracted": result.rows_read,
            "records_loaded": result.rows_written,
            "records_skipped": result.rows_skipped,
            "watermark_before": watermark_before,
            "watermark_after": watermark_after,
            "rejected": [r.to_dict() for r in result.rejected],
            "message": message
        }

    async def _load(self, cancel_event: Optional[asyncio.Event]):
        watermark_before = await self.tracker.read()
        logger.info(f"Run {self.run_id}: extracting rows with OrderDateKey > {watermark_before}")

        result = await self.extractor.extract(watermark_before, cancel_event=cancel_event)

        advanced = await self.tracker.advance(result.max_order_date_key, expected=watermark_before)

        if self.transactional:
            try:
                await self.db.commit()
            except Exception as e:
                raise DestinationWriteError(
                    "Failed to commit staged rows and watermark",
                    context={"run_id": self.run_id, "rows_written": result.rows_written},
                    original_exception=e
                )

        watermark_after = advanced if advanced is not None else watermark_before
        return result, watermark_before, watermark_after

    async def _fail(self, handle: RunHandle, error: ETLException) -> None:
        """Roll back, then write the Failed entry; a failing write is surfaced"""
        self._transition(RunState.FAILED)
        logger.error(
            f"Run {self.run_id} failed: {error.message}",
            extra={"error_context": error.to_dict()}
        )

        try:
            await self.db.rollback()
        except Exception as e:
            logger.error(f"Rollback after run {self.run_id} failure raised: {e}")

        try:
            await self.run_logger.log_failed(handle, str(error))
        except RunLogError as log_error:
            logger.critical(f"Run {self.run_id} failed and its Failed entry could not be written")
            raise RunLogError(
                "Run failed and its Failed entry could not be written",
                context={"run_id": self.run_id, "run_error": error.message},
                original_exception=log_error
            )

    async def _log_rejected_start(self, error: ETLException) -> None:
        try:
            await self.run_logger.insert_log(LoadStatus.FAILED, str(error), run_id=self.run_id)
        except RunLogError as log_error:
            raise RunLogError(
                "Run was refused and its Failed entry could not be written",
                context={"run_id": self.run_id, "run_error": error.message},
                original_exception=log_error
            )

    async def _release_lease(self) -> None:
        try:
            await self.lease.release(self.run_id)
        except Exception as e:
            # The lease expires on its own after LEASE_TTL_SECONDS
            logger.error(f"Run {self.run_id} could not release the lease: {e}")

    @staticmethod
    def _summarize(result: ExtractResult, watermark_before: int, watermark_after: int) -> str:
        message = f"Loaded {result.rows_written} rows into InternetSales_Staging"
        if result.rows_skipped:
            message += f"; skipped {result.rows_skipped} row(s) failing projection"
        message += f"; watermark {watermark_before} -> {watermark_after}"
        return message
