"""
Incremental extractor: copies source rows newer than the watermark into staging.

This module provides:
- Projection of source records onto the staging shape with a configurable
  row error policy (skip and continue, or abort on the first bad row)
- An error channel keeping each rejected record together with its cause
- Batched staging writes
- Retry with exponential backoff for transient read and write failures
- Cooperative cancellation between batches
"""

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type
from pydantic import ValidationError
from sqlalchemy import exc as sa_exc, insert
from sqlalchemy.ext.asyncio import AsyncSession
from delta_load.sources import SalesSource
from models.staging import internet_sales_staging
from schemas.staging import StagingRowCreate
from core.config import settings
from core.exceptions import (
    DestinationWriteError,
    RowProjectionError,
    RunCancelledError,
    SourceReadError,
    TransientDestinationWriteError,
    TransientSourceReadError,
)
import logging

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = {
    SourceReadError: TransientSourceReadError,
    DestinationWriteError: TransientDestinationWriteError,
}


class RowErrorPolicy(str, enum.Enum):
    """What to do with a record that fails projection"""
    SKIP = "skip"
    ABORT = "abort"


@dataclass
class RejectedRow:
    """A source record that could not be staged, with the reason"""
    record: Dict[str, Any]
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": {k: (str(v) if v is not None else None) for k, v in self.record.items()},
            "error": self.error
        }


@dataclass
class ExtractResult:
    """Outcome of one extract() call"""
    rows_read: int = 0
    rows_written: int = 0
    max_order_date_key: Optional[int] = None
    rejected: List[RejectedRow] = field(default_factory=list)

    @property
    def rows_skipped(self) -> int:
        return len(self.rejected)


def is_transient(error: BaseException) -> bool:
    """True for failures worth retrying: timeouts and lost connections"""
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return True
    return isinstance(
        error,
        (
            sa_exc.OperationalError,
            sa_exc.DisconnectionError,
            sa_exc.TimeoutError,
            asyncio.TimeoutError,
            ConnectionError,
        )
    )


class IncrementalExtractor:
    """
    Extract rows newer than the watermark and append them to staging.

    The extractor never touches the watermark; it reports the highest
    OrderDateKey it wrote so the orchestrator can advance it.

    Attributes:
        batch_size: Rows per staging insert (default: ETL_BATCH_SIZE)
        row_error_policy: SKIP (default) or ABORT
        max_retries: Attempts per read or write, first try included (default: 3)
        retry_delay: Initial backoff delay in seconds, doubled per attempt
        transactional: Leave batches uncommitted so the caller commits them
            together with the watermark; disables write retries
    """

    def __init__(
        self,
        db_session: AsyncSession,
        source: SalesSource,
        batch_size: Optional[int] = None,
        row_error_policy: Optional[RowErrorPolicy] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        transactional: Optional[bool] = None,
        on_reject: Optional[Callable[[RejectedRow], None]] = None
    ):
        self.db = db_session
        self.source = source
        self.batch_size = batch_size or settings.ETL_BATCH_SIZE
        self.row_error_policy = RowErrorPolicy(row_error_policy or settings.ROW_ERROR_POLICY)
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY
        self.transactional = (
            transactional if transactional is not None else settings.STAGING_TRANSACTIONAL
        )
        self.on_reject = on_reject

    async def extract(
        self,
        since_exclusive: int,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ExtractResult:
        """
        Copy every source record with OrderDateKey > ``since_exclusive`` to staging.

        Returns:
            ExtractResult with counts, the highest staged key and rejected rows

        Raises:
            SourceReadError: Reading the source failed
            DestinationWriteError: Writing a staging batch failed
            RowProjectionError: A record failed projection under ABORT policy
            RunCancelledError: ``cancel_event`` was set
        """
        self._check_cancelled(cancel_event, "before source read")

        records = await self._with_retry(
            lambda: self.source.fetch_since(since_exclusive),
            SourceReadError,
            f"Read from {self.source.name}",
            reset=self.source.reset,
            allow_retry=True,
            context={"source": self.source.name, "since_exclusive": since_exclusive}
        )

        result = ExtractResult(rows_read=len(records))
        rows = self._project(records, since_exclusive, result)

        for batch_index, start in enumerate(range(0, len(rows), self.batch_size)):
            self._check_cancelled(cancel_event, f"before batch {batch_index}")

            batch = rows[start:start + self.batch_size]
            await self._write_batch(batch_index, batch, result.rows_written)

            result.rows_written += len(batch)
            batch_max = max(row["OrderDateKey"] for row in batch)
            if result.max_order_date_key is None or batch_max > result.max_order_date_key:
                result.max_order_date_key = batch_max

            logger.debug(f"Batch {batch_index + 1}: staged {len(batch)} rows")

        logger.info(
            f"Extract complete: read={result.rows_read}, written={result.rows_written}, "
            f"skipped={result.rows_skipped}, max OrderDateKey={result.max_order_date_key}"
        )
        return result

    def _project(
        self,
        records: List[Dict[str, Any]],
        since_exclusive: int,
        result: ExtractResult
    ) -> List[Dict[str, Any]]:
        """Turn source records into staging rows, routing failures to the error channel"""
        rows = []

        for record in records:
            try:
                staged = StagingRowCreate.model_validate(record)
            except ValidationError as e:
                self._reject(record, self._describe(e), result)
                continue

            if staged.OrderDateKey <= since_exclusive:
                self._reject(
                    record,
                    f"OrderDateKey {staged.OrderDateKey} is not newer than watermark {since_exclusive}",
                    result
                )
                continue

            rows.append(staged.to_row())

        return rows

    def _reject(self, record: Dict[str, Any], error: str, result: ExtractResult) -> None:
        rejected = RejectedRow(record=dict(record), error=error)

        if self.row_error_policy is RowErrorPolicy.ABORT:
            raise RowProjectionError(
                "Source row failed projection",
                context={
                    "sales_order_number": record.get("SalesOrderNumber"),
                    "field_errors": error,
                    "policy": self.row_error_policy.value
                }
            )

        result.rejected.append(rejected)
        logger.warning(
            f"Skipping row SalesOrderNumber={record.get('SalesOrderNumber')}: {error}"
        )
        if self.on_reject:
            self.on_reject(rejected)

    @staticmethod
    def _describe(error: ValidationError) -> str:
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in error.errors()
        )

    async def _write_batch(self, batch_index: int, batch: List[Dict[str, Any]], rows_written: int) -> None:
        await self._with_retry(
            lambda: self._insert_batch(batch),
            DestinationWriteError,
            f"Write batch {batch_index} to {internet_sales_staging.name}",
            reset=self.db.rollback,
            allow_retry=not self.transactional,
            context={
                "table_name": internet_sales_staging.name,
                "operation": "INSERT",
                "batch_index": batch_index,
                "batch_size": len(batch),
                "rows_written": rows_written
            }
        )

    async def _insert_batch(self, batch: List[Dict[str, Any]]) -> None:
        await self.db.execute(insert(internet_sales_staging), batch)
        if self.transactional:
            await self.db.flush()
        else:
            await self.db.commit()

    async def _with_retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        error_cls: Type[Exception],
        description: str,
        reset: Callable[[], Awaitable[None]],
        allow_retry: bool,
        context: Dict[str, Any]
    ) -> Any:
        """
        Run ``operation``, retrying transient failures with exponential backoff.

        Permanent failures are raised as ``error_cls``. Transient ones that
        exhaust their attempts are raised as its RetryableError subclass.
        """
        attempts = self.max_retries if allow_retry else 1

        for attempt in range(attempts):
            try:
                return await operation()

            except (RowProjectionError, RunCancelledError, error_cls):
                raise

            except Exception as e:
                transient = is_transient(e)

                if transient and attempt < attempts - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"{description} failed ({type(e).__name__}: {e}). "
                        f"Retrying in {delay} seconds (attempt {attempt + 1}/{attempts})"
                    )
                    await reset()
                    await asyncio.sleep(delay)
                    continue

                logger.error(f"{description} failed after {attempt + 1} attempt(s): {e}")
                error_context = {**context, "retry_count": attempt + 1}
                if transient:
                    raise _TRANSIENT_ERRORS[error_cls](
                        f"{description} failed",
                        context=error_context,
                        original_exception=e
                    )
                raise error_cls(
                    f"{description} failed",
                    context=error_context,
                    original_exception=e
                )

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], where: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelledError(
                f"Extraction cancelled {where}",
                context={"cancelled_at": where}
            )
