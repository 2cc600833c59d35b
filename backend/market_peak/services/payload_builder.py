"""Assembly of the normalized assessment payload."""

import asyncio
import logging
from datetime import datetime, timezone

from market_peak.services.historical_cache import DailySeries, HistoricalSeriesCache
from market_peak.services.indicator_subscription import IndicatorSubscription
from market_peak.services.series_aggregator import SeriesAggregator
from peak_core.models import AssessmentPayload
from peak_core.series import DEFAULT_MAX_DAILY_POINTS, format_daily_series, format_recent_window
from peak_core.summary import raw_snapshot, render_indicator_summary

logger = logging.getLogger(__name__)

# Payload contract v1: the prompt template uses these field names verbatim
INDICATOR_SUMMARY_FIELD = "bull_market_peak_indicators"
INDICATOR_RAW_FIELD = "bull_market_peak_raw"


def recent_field(asset: str) -> str:
    return f"{asset}_recent_minutes_24h"


def daily_field(asset: str) -> str:
    return f"{asset}_daily_900d_close"


class PayloadBuilder:
    """Merges the indicator snapshot, recent windows and daily series.

    Every source degrades independently: a missing snapshot becomes a
    placeholder, a failed window an explicit marker, and an empty daily
    series an empty array.
    """

    def __init__(
        self,
        subscription: IndicatorSubscription,
        history: HistoricalSeriesCache,
        aggregator: SeriesAggregator,
        assets: list[str],
        asset_labels: dict[str, str] | None = None,
        max_daily_points: int = DEFAULT_MAX_DAILY_POINTS,
    ):
        self._subscription = subscription
        self._history = history
        self._aggregator = aggregator
        self.assets = list(assets)
        self.asset_labels = asset_labels or {}
        self.max_daily_points = max_daily_points

    def _label(self, asset: str) -> str:
        return self.asset_labels.get(asset, asset.upper())

    async def _daily_series(self) -> dict[str, DailySeries]:
        series = await asyncio.gather(*(self._history.get(a) for a in self.assets))
        return dict(zip(self.assets, series))

    async def build(self) -> AssessmentPayload:
        """Build a fresh payload for one pipeline run."""
        snapshot = self._subscription.current()
        if snapshot is None:
            logger.warning("No indicator snapshot available, using placeholder")

        fields: dict[str, object] = {
            INDICATOR_SUMMARY_FIELD: render_indicator_summary(snapshot),
            INDICATOR_RAW_FIELD: raw_snapshot(snapshot),
        }

        windows, daily = await asyncio.gather(
            self._aggregator.collect(self.assets),
            self._daily_series(),
        )

        unavailable: list[str] = []
        if snapshot is None:
            unavailable.append(self._subscription.name)

        for asset in self.assets:
            window = windows.get(asset)
            series = daily.get(asset, ())
            fields[recent_field(asset)] = format_recent_window(window, f"{asset}_24h")
            fields[daily_field(asset)] = format_daily_series(series, self.max_daily_points)
            if not window or not series:
                unavailable.append(self._label(asset))

        data_sources = (self._subscription.name, *(self._label(a) for a in self.assets))
        if unavailable:
            logger.warning(f"Payload built with unavailable sources: {', '.join(unavailable)}")

        return AssessmentPayload(
            generated_at=datetime.now(timezone.utc),
            template_fields=fields,
            data_sources=data_sources,
            unavailable_sources=tuple(unavailable),
        )
