import asyncio
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from delta_load.extractor import ExtractResult, RejectedRow
from delta_load.run_log import RunHandle
from delta_load.runner import LoadRunner, RunState
from models.base import LoadStatus
from core.exceptions import (
    ConcurrentRunDetectedError,
    DestinationWriteError,
    RunLogError,
    RunStateError,
    RunTimeoutError,
)


def _runner(extract_result=None, extract_error=None, **kwargs):
    extractor = MagicMock()
    extractor.extract = AsyncMock(return_value=extract_result or ExtractResult())
    if extract_error is not None:
        extractor.extract.side_effect = extract_error

    tracker = AsyncMock()
    tracker.read.return_value = 0
    tracker.advance.side_effect = lambda candidate, expected=None: candidate

    run_logger = AsyncMock()
    run_logger.log_started.return_value = RunHandle(
        run_id="run-1", log_id=1, started_at=datetime.utcnow()
    )

    lease = AsyncMock()

    runner = LoadRunner(
        AsyncMock(),
        extractor=extractor,
        tracker=tracker,
        run_logger=run_logger,
        lease=lease,
        timeout_seconds=kwargs.pop("timeout_seconds", 5),
        transactional=kwargs.pop("transactional", False)
    )
    return runner


@pytest.mark.asyncio
async def test_successful_run_returns_statistics():
    result = ExtractResult(rows_read=3, rows_written=3, max_order_date_key=30)
    runner = _runner(result)

    stats = await runner.run(note="manual")

    assert runner.state is RunState.SUCCEEDED
    assert stats["status"] == "success"
    assert stats["records_loaded"] == 3
    assert stats["watermark_before"] == 0
    assert stats["watermark_after"] == 30
    assert stats["message"] == "Loaded 3 rows into InternetSales_Staging; watermark 0 -> 30"

    runner.run_logger.log_started.assert_awaited_once_with(note="manual", run_id=runner.run_id)
    runner.tracker.advance.assert_awaited_once_with(30, expected=0)
    runner.run_logger.log_succeeded.assert_awaited_once()
    runner.run_logger.log_failed.assert_not_awaited()
    runner.lease.acquire.assert_awaited_once_with(runner.run_id)
    runner.lease.release.assert_awaited_once_with(runner.run_id)


@pytest.mark.asyncio
async def test_summary_mentions_skipped_rows():
    result = ExtractResult(
        rows_read=3,
        rows_written=2,
        max_order_date_key=20,
        rejected=[RejectedRow(record={"SalesOrderNumber": "SO3"}, error="SalesAmount: invalid")]
    )

    stats = await _runner(result).run()

    assert "skipped 1 row(s) failing projection" in stats["message"]
    assert stats["records_skipped"] == 1
    assert stats["rejected"][0]["error"] == "SalesAmount: invalid"


@pytest.mark.asyncio
async def test_nothing_staged_leaves_watermark():
    runner = _runner(ExtractResult())
    runner.tracker.advance.side_effect = None
    runner.tracker.advance.return_value = None

    stats = await runner.run()

    assert stats["watermark_after"] == 0
    runner.tracker.advance.assert_awaited_once_with(None, expected=0)


@pytest.mark.asyncio
async def test_failure_logs_failed_and_keeps_watermark():
    error = DestinationWriteError("Write batch 0 to InternetSales_Staging failed")
    runner = _runner(extract_error=error)

    with pytest.raises(DestinationWriteError):
        await runner.run()

    assert runner.state is RunState.FAILED
    runner.tracker.advance.assert_not_awaited()
    runner.db.rollback.assert_awaited()
    handle, detail = runner.run_logger.log_failed.await_args.args
    assert "Write batch 0 to InternetSales_Staging failed" in detail
    runner.run_logger.log_succeeded.assert_not_awaited()
    runner.lease.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_unexpected_error_is_wrapped():
    runner = _runner(extract_error=KeyError("OrderDateKey"))

    with pytest.raises(Exception) as exc_info:
        await runner.run()

    assert type(exc_info.value).__name__ == "ETLException"
    assert isinstance(exc_info.value.original_exception, KeyError)
    runner.run_logger.log_failed.assert_awaited_once()


@pytest.mark.asyncio
async def test_lease_conflict_logs_single_failed_entry():
    runner = _runner()
    runner.lease.acquire.side_effect = ConcurrentRunDetectedError(
        "Another run holds the load lease 'internet_sales'",
        context={"holder": "other-run"}
    )

    with pytest.raises(ConcurrentRunDetectedError):
        await runner.run()

    assert runner.state is RunState.FAILED
    runner.run_logger.log_started.assert_not_awaited()
    status, message = runner.run_logger.insert_log.await_args.args
    assert status is LoadStatus.FAILED
    assert "other-run" in message
    runner.lease.release.assert_not_awaited()
    runner.extractor.extract.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_entry_write_failure_is_surfaced():
    runner = _runner(extract_error=DestinationWriteError("boom"))
    runner.run_logger.log_failed.side_effect = RunLogError("database gone")

    with pytest.raises(RunLogError) as exc_info:
        await runner.run()

    assert exc_info.value.context["run_error"] == "boom"


@pytest.mark.asyncio
async def test_succeeded_entry_write_failure_is_surfaced():
    runner = _runner(ExtractResult(rows_read=1, rows_written=1, max_order_date_key=10))
    runner.run_logger.log_succeeded.side_effect = RunLogError("database gone")

    with pytest.raises(RunLogError):
        await runner.run()

    assert runner.state is RunState.FAILED


@pytest.mark.asyncio
async def test_timeout_fails_run():
    async def stall(*args, **kwargs):
        await asyncio.sleep(10)

    runner = _runner(timeout_seconds=0.05)
    runner.extractor.extract.side_effect = stall

    with pytest.raises(RunTimeoutError):
        await runner.run()

    assert runner.state is RunState.FAILED
    runner.tracker.advance.assert_not_awaited()
    runner.run_logger.log_failed.assert_awaited_once()


@pytest.mark.asyncio
async def test_task_cancellation_logs_failed_and_propagates():
    started = asyncio.Event()

    async def stall(*args, **kwargs):
        started.set()
        await asyncio.sleep(10)

    runner = _runner()
    runner.extractor.extract.side_effect = stall

    task = asyncio.create_task(runner.run())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert runner.state is RunState.FAILED
    handle, detail = runner.run_logger.log_failed.await_args.args
    assert "RunCancelledError" in detail
    runner.lease.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_transactional_run_commits_once_after_advance():
    runner = _runner(
        ExtractResult(rows_read=1, rows_written=1, max_order_date_key=10),
        transactional=True
    )

    await runner.run()

    runner.db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_runner_is_single_use():
    runner = _runner()
    await runner.run()

    with pytest.raises(RunStateError):
        await runner.run()
