"""Periodic triggers for analysis runs and daily cache refresh."""

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Awaitable, Callable

from market_peak.services.historical_cache import HistoricalSeriesCache
from market_peak.services.pipeline import AnalysisPipeline, RunOutcome
from peak_core.schedule import seconds_until_daily, seconds_until_next_interval

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Scheduler:
    """Owns the background jobs that drive the pipeline.

    Jobs:
    - Analysis run every ``interval_minutes`` (hourly at minute 0)
    - Daily close cache refresh at ``daily_refresh_at`` UTC, plus once at start

    No other component triggers itself. A failed job is logged and the
    loop carries on with the next scheduled tick.
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        history: HistoricalSeriesCache,
        interval_minutes: int = 60,
        daily_refresh_at: time = time(2, 15),
        clock: Clock = _utcnow,
    ):
        self.pipeline = pipeline
        self.history = history
        self.interval_minutes = interval_minutes
        self.daily_refresh_at = daily_refresh_at
        self._clock = clock
        self._tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        """Start the background jobs and the initial cache refresh."""
        if self._tasks:
            return

        self._tasks = [
            asyncio.create_task(self._refresh_history("startup")),
            asyncio.create_task(
                self._every(
                    lambda now: seconds_until_next_interval(now, self.interval_minutes),
                    self._scheduled_run,
                    "analysis",
                )
            ),
            asyncio.create_task(
                self._every(
                    lambda now: seconds_until_daily(now, self.daily_refresh_at),
                    lambda: self._refresh_history("daily"),
                    "daily cache refresh",
                )
            ),
        ]
        logger.info(
            f"Scheduler started: analysis every {self.interval_minutes} min, "
            f"cache refresh daily at {self.daily_refresh_at.strftime('%H:%M')} UTC"
        )

    async def stop(self) -> None:
        """Cancel all background jobs."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def trigger(self) -> RunOutcome:
        """Run the pipeline now on explicit request."""
        return await self.pipeline.run(trigger="manual")

    async def _scheduled_run(self) -> None:
        logger.info("Starting scheduled market peak analysis")
        outcome = await self.pipeline.run(trigger="scheduled")
        if not outcome.success:
            logger.error(f"Scheduled analysis failed: {outcome.error}")

    async def _refresh_history(self, reason: str) -> None:
        logger.info(f"Daily cache refresh triggered ({reason})")
        await self.history.refresh()

    async def _every(
        self,
        delay: Callable[[datetime], float],
        job: Callable[[], Awaitable[None]],
        name: str,
    ) -> None:
        """Sleep until the next tick, run the job, repeat.

        Ticks are strictly increasing: each is computed from the later of
        the clock and the tick just fired, and never fires before it is due.
        """
        last_tick: datetime | None = None
        while True:
            now = self._clock()
            if last_tick is not None and now < last_tick:
                now = last_tick
            tick = now + timedelta(seconds=delay(now))

            await asyncio.sleep((tick - now).total_seconds())
            remaining = (tick - self._clock()).total_seconds()
            if remaining > 0:
                await asyncio.sleep(remaining)
            last_tick = tick

            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Scheduled {name} job failed: {e}")
