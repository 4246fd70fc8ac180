import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from delta_load.scheduler import LoadScheduler
from core.exceptions import ConcurrentRunDetectedError, DestinationWriteError


def _scheduler_with_mock_session():
    scheduler = LoadScheduler(interval_minutes=15)
    mock_session = AsyncMock()
    scheduler.SessionLocal = MagicMock()
    scheduler.SessionLocal.return_value.__aenter__.return_value = mock_session
    return scheduler


@pytest.mark.asyncio
async def test_scheduler_initialization():
    scheduler = LoadScheduler(interval_minutes=15)
    assert scheduler.scheduler is not None
    assert scheduler.engine is not None
    assert scheduler.interval_minutes == 15


@pytest.mark.asyncio
async def test_scheduler_job_execution():
    with patch("delta_load.scheduler.LoadRunner") as mock_runner_cls:
        mock_runner = AsyncMock()
        mock_runner.run.return_value = {"run_id": "run-1", "records_loaded": 3}
        mock_runner_cls.return_value = mock_runner

        scheduler = _scheduler_with_mock_session()
        await scheduler.run_load_job()

        mock_runner.run.assert_awaited_once_with(note="scheduled")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    ConcurrentRunDetectedError("Another run holds the load lease"),
    DestinationWriteError("Write batch 0 failed"),
])
async def test_scheduler_job_contains_load_failures(error):
    with patch("delta_load.scheduler.LoadRunner") as mock_runner_cls:
        mock_runner = AsyncMock()
        mock_runner.run.side_effect = error
        mock_runner_cls.return_value = mock_runner

        scheduler = _scheduler_with_mock_session()
        # Must not raise into APScheduler
        await scheduler.run_load_job()

        mock_runner.run.assert_awaited_once()


@pytest.mark.asyncio
async def test_scheduler_registers_single_instance_job():
    scheduler = LoadScheduler(interval_minutes=15)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("internet_sales_delta_load")
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
    finally:
        scheduler.stop()
