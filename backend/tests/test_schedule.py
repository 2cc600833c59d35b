"""Tests for schedule arithmetic and the scheduler."""

import asyncio
from datetime import datetime, time, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_peak.services.scheduler import Scheduler
from peak_core.schedule import seconds_until_daily, seconds_until_next_interval


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestScheduleArithmetic:
    def test_hourly_fires_at_minute_zero(self):
        assert seconds_until_next_interval(utc(2025, 1, 1, 10, 59, 30), 60) == 30
        assert seconds_until_next_interval(utc(2025, 1, 1, 10, 15), 60) == 45 * 60

    def test_exactly_on_tick_waits_full_interval(self):
        assert seconds_until_next_interval(utc(2025, 1, 1, 10, 0), 60) == 3600

    def test_sub_hour_interval(self):
        assert seconds_until_next_interval(utc(2025, 1, 1, 10, 7), 15) == 8 * 60

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            seconds_until_next_interval(utc(2025, 1, 1), 0)

    def test_daily_later_today(self):
        assert seconds_until_daily(utc(2025, 1, 1, 1, 15), time(2, 15)) == 3600

    def test_daily_rolls_to_tomorrow(self):
        assert seconds_until_daily(utc(2025, 1, 1, 2, 15), time(2, 15)) == 24 * 3600
        assert seconds_until_daily(utc(2025, 1, 1, 3, 15), time(2, 15)) == 23 * 3600


class TestScheduler:
    """Tests for Scheduler."""

    def make(self):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=MagicMock(success=True))
        history = MagicMock()
        history.refresh = AsyncMock(return_value=True)
        return Scheduler(pipeline, history), pipeline, history

    @pytest.mark.asyncio
    async def test_start_refreshes_history_once(self):
        scheduler, pipeline, history = self.make()
        await scheduler.start()
        await asyncio.sleep(0.01)
        try:
            history.refresh.assert_awaited_once()
            pipeline.run.assert_not_called()
            assert scheduler.is_running
        finally:
            await scheduler.stop()
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_trigger_runs_manual(self):
        scheduler, pipeline, _ = self.make()
        await scheduler.trigger()
        pipeline.run.assert_awaited_once_with(trigger="manual")

    @pytest.mark.asyncio
    async def test_job_failure_keeps_loop_alive(self):
        scheduler, _, _ = self.make()
        calls = []

        async def job():
            calls.append(1)
            raise RuntimeError("job failed")

        task = asyncio.create_task(scheduler._every(lambda now: 0.001, job, "test"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_early_wake_fires_tick_once(self):
        pipeline = MagicMock()
        history = MagicMock()
        frozen = utc(2025, 1, 1, 10, 59, 59, 999000)
        scheduler = Scheduler(pipeline, history, clock=lambda: frozen)
        calls = []

        async def failing_job():
            calls.append(1)
            raise RuntimeError("data service down")

        task = asyncio.create_task(
            scheduler._every(
                lambda now: seconds_until_next_interval(now, 60), failing_job, "test"
            )
        )
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler, _, _ = self.make()
        await scheduler.stop()
