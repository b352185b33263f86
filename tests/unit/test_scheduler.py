import pytest
from unittest.mock import AsyncMock, MagicMock
from monitoring.scheduler import MonitorScheduler


def test_scheduler_initialization():
    scheduler = MonitorScheduler(MagicMock(), interval_minutes=15)
    assert scheduler.scheduler is not None
    assert scheduler.interval_minutes == 15


@pytest.mark.asyncio
async def test_scheduler_job_execution():
    runner = MagicMock()
    runner.run_once = AsyncMock(return_value=MagicMock(processed_count=2, notified_count=3))
    scheduler = MonitorScheduler(runner)

    await scheduler.run_monitor_job()

    runner.run_once.assert_awaited_once_with(trigger="scheduler")


@pytest.mark.asyncio
async def test_scheduler_job_survives_failure():
    runner = MagicMock()
    runner.run_once = AsyncMock(side_effect=RuntimeError("database down"))
    scheduler = MonitorScheduler(runner)

    await scheduler.run_monitor_job()

    runner.run_once.assert_awaited_once()


@pytest.mark.asyncio
async def test_job_is_single_flight():
    scheduler = MonitorScheduler(MagicMock(), interval_minutes=30)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("monitor_job")
        assert job.max_instances == 1
        assert job.coalesce is True
    finally:
        scheduler.stop()
