"""Wall-clock schedule arithmetic for the periodic jobs."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone


def seconds_until_next_interval(now: datetime, interval_minutes: int) -> float:
    """Seconds until the next multiple of ``interval_minutes`` past midnight UTC.

    An hourly interval therefore fires at minute 0 of every hour.
    """
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")
    now = now.astimezone(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = (now - midnight).total_seconds()
    period = interval_minutes * 60
    next_tick = (elapsed // period + 1) * period
    return next_tick - elapsed


def seconds_until_daily(now: datetime, at: time) -> float:
    """Seconds until the next occurrence of ``at`` (UTC)."""
    now = now.astimezone(timezone.utc)
    target = now.replace(
        hour=at.hour, minute=at.minute, second=at.second, microsecond=0
    )
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()
