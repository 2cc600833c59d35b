"""Price series normalization and prompt formatting."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, Sequence

import orjson

from peak_core.models import DailyClosePoint

# Alternate names the data service uses for the close price, in priority order
CLOSE_FIELDS = ("close", "price", "c")

DEFAULT_MAX_DAILY_POINTS = 900

# Recent window down-sampling: keep every Nth point, then the last M samples
RECENT_SAMPLE_STRIDE = 5
RECENT_MAX_SAMPLES = 288


def _finite_number(value: Any) -> float | None:
    """Return value as float if it is a finite real number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _timestamp_key(value: Any) -> float | None:
    """Get a sortable key for a provider timestamp (epoch number or ISO string)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed.timestamp() * 1000
    return None


def _raw_close(item: dict[str, Any]) -> Any:
    for field in CLOSE_FIELDS:
        if item.get(field) is not None:
            return item[field]
    return None


def normalize_daily_closes(
    raw: Iterable[Any] | None,
    max_points: int = DEFAULT_MAX_DAILY_POINTS,
) -> tuple[DailyClosePoint, ...]:
    """Normalize raw daily data into a clean daily close series.

    Maps the alternate close field names onto ``close``, drops points
    whose close is not a finite number, sorts ascending by timestamp
    (a repeated timestamp keeps the later point) and keeps the last
    ``max_points`` points.

    Args:
        raw: Items as returned by the data service
        max_points: Maximum series length

    Returns:
        Strictly ascending tuple of DailyClosePoint
    """
    by_key: dict[float, DailyClosePoint] = {}
    for item in raw or ():
        if not isinstance(item, dict):
            continue
        close = _finite_number(_raw_close(item))
        key = _timestamp_key(item.get("timestamp"))
        if close is None or key is None:
            continue
        by_key[key] = DailyClosePoint(timestamp=item["timestamp"], close=close)

    ordered = [by_key[key] for key in sorted(by_key)]
    if max_points <= 0:
        return ()
    return tuple(ordered[-max_points:])


def extract_recent_points(body: Any) -> list[Any] | None:
    """Pick the point array out of a recent-window response.

    The data service returns either a bare array or an object wrapping
    it under ``prices`` or ``data``.
    """
    if isinstance(body, dict):
        points = body.get("prices") or body.get("data")
    else:
        points = body
    if isinstance(points, list):
        return points
    return None


def sample_recent_window(points: Sequence[Any]) -> list[Any]:
    """Keep every 5th point (0-indexed) and then the last 288 samples."""
    return list(points[::RECENT_SAMPLE_STRIDE])[-RECENT_MAX_SAMPLES:]


def insufficient_data_marker(label: str) -> str:
    return f"insufficient_{label}_data"


def format_recent_window(points: Sequence[Any] | None, label: str) -> str:
    """Render a recent window as compact JSON for the prompt.

    An absent or empty window renders as an explicit marker string so
    the prompt never carries an ambiguous empty field.
    """
    if not points:
        return insufficient_data_marker(label)
    return orjson.dumps(sample_recent_window(points)).decode()


def format_daily_series(
    series: Sequence[DailyClosePoint],
    max_points: int = DEFAULT_MAX_DAILY_POINTS,
) -> str:
    """Render the last ``max_points`` daily closes as compact JSON."""
    tail = list(series)[-max_points:] if max_points > 0 else []
    return orjson.dumps([point.model_dump() for point in tail]).decode()
