"""Per-asset cache of long daily close series.

Refreshed once at startup, daily on a schedule, and lazily when a
reader finds an asset's series empty. Each asset's series is replaced
atomically, so a failed fetch for one asset never touches the others.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from market_peak.clients.data_service import DataServiceClient
from peak_core.models import DailyClosePoint
from peak_core.series import DEFAULT_MAX_DAILY_POINTS, normalize_daily_closes

logger = logging.getLogger(__name__)

DailySeries = tuple[DailyClosePoint, ...]


class HistoricalSeriesCache:
    """In-memory daily series per tracked asset."""

    def __init__(
        self,
        client: DataServiceClient,
        assets: list[str],
        days: int = 900,
        max_points: int = DEFAULT_MAX_DAILY_POINTS,
        timeout: float = 30.0,
    ):
        self._client = client
        self.assets = list(assets)
        self.days = days
        self.max_points = max_points
        self.timeout = timeout
        self._series: dict[str, DailySeries] = {asset: () for asset in self.assets}
        self._refresh_lock = asyncio.Lock()
        self.last_refreshed_at: datetime | None = None

    async def _fetch(self, asset: str) -> DailySeries:
        raw = await self._client.get_daily(asset, days=self.days, timeout=self.timeout)
        return normalize_daily_closes(raw, self.max_points)

    async def refresh(self) -> bool:
        """Refresh every tracked asset in parallel.

        Partial success is kept. On total failure the previous cache is
        left untouched; the failure is logged, never raised.

        Returns:
            True if at least one asset was refreshed
        """
        logger.info(f"Refreshing ~{self.days}d daily closes for {', '.join(self.assets)}...")

        results: list[Any] = await asyncio.gather(
            *(self._fetch(asset) for asset in self.assets),
            return_exceptions=True,
        )

        refreshed = 0
        for asset, result in zip(self.assets, results):
            if isinstance(result, BaseException):
                logger.warning(f"Daily closes refresh failed for {asset}: {result}")
                continue
            self._series[asset] = result
            refreshed += 1

        if refreshed == 0:
            logger.error("Failed to refresh daily closes: no asset could be fetched")
            return False

        self.last_refreshed_at = datetime.now(timezone.utc)
        counts = ", ".join(f"{a}: {len(self._series.get(a, ()))}" for a in self.assets)
        logger.info(f"Daily closes ready - {counts}")
        return True

    async def get(self, asset: str) -> DailySeries:
        """Get the cached series, refreshing once if it is empty.

        Concurrent callers that find the cache empty share one refresh.
        """
        cached = self._series.get(asset, ())
        if cached:
            return cached

        async with self._refresh_lock:
            cached = self._series.get(asset, ())
            if cached:
                return cached
            await self.refresh()
        return self._series.get(asset, ())

    def status(self) -> dict[str, Any]:
        """Cache sizes and last refresh time."""
        return {
            **{f"{asset}_daily": len(self._series.get(asset, ())) for asset in self.assets},
            "last_refreshed": (
                self.last_refreshed_at.isoformat() if self.last_refreshed_at else None
            ),
        }
