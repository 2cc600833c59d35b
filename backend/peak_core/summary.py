"""Human-readable rendering of the indicator snapshot."""

from __future__ import annotations

from typing import Any

from peak_core.models import Indicator, IndicatorSnapshot

NO_INDICATORS_SUMMARY = "No Bull Market Peak Indicators available"

# Substituted for the raw snapshot when the feed has no document
NO_SNAPSHOT_PLACEHOLDER: dict[str, str] = {"note": "no_bull_peak_data"}

MISSING = "N/A"
UNKNOWN_INDICATOR = "Unknown Indicator"


def _text(value: Any) -> str:
    if value is None or value == "":
        return MISSING
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_indicator_line(indicator: Indicator) -> str:
    """Format one indicator as ``<name>: <hit> (Value: <v>, Threshold: <t>)``."""
    name = indicator.name or UNKNOWN_INDICATOR
    hit = "true" if indicator.hit else "false"
    return (
        f"{name}: {hit} "
        f"(Value: {_text(indicator.current_value)}, "
        f"Threshold: {_text(indicator.threshold)})"
    )


def render_indicator_summary(snapshot: IndicatorSnapshot | None) -> str:
    """Render one line per indicator, or a fixed sentence when there is no data."""
    if snapshot is None or not snapshot.indicators:
        return NO_INDICATORS_SUMMARY
    return "\n".join(format_indicator_line(ind) for ind in snapshot.indicators)


def raw_snapshot(snapshot: IndicatorSnapshot | None) -> dict[str, Any]:
    """Get the raw snapshot document, or the no-data placeholder."""
    if snapshot is None:
        return dict(NO_SNAPSHOT_PLACEHOLDER)
    return dict(snapshot.raw)
