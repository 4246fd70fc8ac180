"""
Run logger: append-only lifecycle entries in InternetSales_LoadLog
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Union
from sqlalchemy import select
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession
from models.base import LoadStatus, MESSAGE_MAX_LENGTH
from models.load_log import LoadLogEntry
from core.exceptions import RunLogError
import logging
import uuid

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = [s.value for s in LoadStatus if s.is_terminal]


def truncate_message(message: Optional[str], limit: int = MESSAGE_MAX_LENGTH) -> Optional[str]:
    """Fit a message into the log column, keeping its beginning"""
    if message is None:
        return None
    return message[:limit]


@dataclass
class RunHandle:
    """Correlates the Started entry of a run with its terminal entry"""
    run_id: str
    log_id: Optional[int]
    started_at: datetime
    terminal_status: Optional[LoadStatus] = None

    @property
    def closed(self) -> bool:
        return self.terminal_status is not None


class RunLogger:
    """
    Writes run lifecycle entries.

    Every run gets one Started entry (log_started) and exactly one terminal
    entry (log_succeeded or log_failed), all carrying the run's RunID.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def insert_log(
        self,
        status: Union[LoadStatus, str],
        message: Optional[str] = None,
        run_id: Optional[str] = None
    ) -> LoadLogEntry:
        """Append one entry and commit it"""
        try:
            status = LoadStatus(status)
        except ValueError as e:
            raise RunLogError(
                f"Unknown load status {status!r}",
                context={"allowed": [s.value for s in LoadStatus]},
                original_exception=e
            )

        entry = LoadLogEntry(
            status=status.value,
            message=truncate_message(message),
            run_id=run_id,
            load_date=datetime.utcnow()
        )
        self.db.add(entry)

        try:
            await self.db.commit()
            await self.db.refresh(entry)
        except Exception as e:
            await self.db.rollback()
            raise RunLogError(
                f"Failed to write {status.value} log entry",
                context={"run_id": run_id, "status": status.value},
                original_exception=e
            )

        return entry

    async def log_started(self, note: Optional[str] = None, run_id: Optional[str] = None) -> RunHandle:
        """Append the Started entry of a new run"""
        run_id = run_id or str(uuid.uuid4())
        entry = await self.insert_log(LoadStatus.STARTED, note, run_id=run_id)
        logger.info(f"Run {run_id} started (log_id={entry.log_id})")
        return RunHandle(run_id=run_id, log_id=entry.log_id, started_at=entry.load_date)

    async def log_succeeded(self, handle: RunHandle, note: Optional[str] = None) -> LoadLogEntry:
        """Append the Succeeded entry for ``handle``"""
        return await self._log_terminal(handle, LoadStatus.SUCCEEDED, note)

    async def log_failed(self, handle: RunHandle, error_detail: str) -> LoadLogEntry:
        """Append the Failed entry for ``handle``; detail is cut to the column width"""
        return await self._log_terminal(handle, LoadStatus.FAILED, error_detail)

    async def _log_terminal(
        self,
        handle: RunHandle,
        status: LoadStatus,
        message: Optional[str]
    ) -> LoadLogEntry:
        if handle.closed:
            raise RunLogError(
                f"Run {handle.run_id} already has a terminal entry",
                context={
                    "run_id": handle.run_id,
                    "existing_status": handle.terminal_status.value,
                    "requested_status": status.value
                }
            )

        entry = await self.insert_log(status, message, run_id=handle.run_id)
        handle.terminal_status = status

        duration = (entry.load_date - handle.started_at).total_seconds()
        logger.info(f"Run {handle.run_id} {status.value.lower()} after {duration:.2f}s")
        return entry

    async def recent(self, limit: int = 20) -> List[LoadLogEntry]:
        """Newest entries first"""
        result = await self.db.execute(
            select(LoadLogEntry)
            .order_by(LoadLogEntry.log_id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def last_terminal(self) -> Optional[LoadLogEntry]:
        """Most recent Succeeded or Failed entry"""
        result = await self.db.execute(
            select(LoadLogEntry)
            .where(LoadLogEntry.status.in_(_TERMINAL_STATUSES))
            .order_by(LoadLogEntry.log_id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_orphaned_runs(self, older_than: timedelta) -> List[LoadLogEntry]:
        """
        Started entries older than ``older_than`` with no terminal entry.

        These are runs that crashed before reaching their terminal log write.
        Entries without a RunID cannot be correlated and are not reported.
        """
        cutoff = datetime.utcnow() - older_than
        terminal = aliased(LoadLogEntry)

        has_terminal = (
            select(terminal.log_id)
            .where(
                terminal.run_id == LoadLogEntry.run_id,
                terminal.status.in_(_TERMINAL_STATUSES)
            )
            .exists()
        )

        result = await self.db.execute(
            select(LoadLogEntry)
            .where(
                LoadLogEntry.status == LoadStatus.STARTED.value,
                LoadLogEntry.run_id.isnot(None),
                LoadLogEntry.load_date < cutoff,
                ~has_terminal
            )
            .order_by(LoadLogEntry.load_date)
        )
        return list(result.scalars().all())
