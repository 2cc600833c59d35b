"""Concurrent collection of recent price windows."""

import asyncio
import logging
from typing import Any

from market_peak.clients.data_service import DataServiceClient
from peak_core.errors import TransportError
from peak_core.series import extract_recent_points

logger = logging.getLogger(__name__)

RecentWindow = list[Any]


class SeriesAggregator:
    """Pulls the recent window of every asset in parallel.

    Each pull has its own timeout. A failed or timed-out pull yields
    ``None`` for that asset without cancelling or delaying the others.
    There are no retries; the next pipeline run tries again.
    """

    def __init__(
        self,
        client: DataServiceClient,
        hours: int = 24,
        timeout: float = 90.0,
    ):
        self._client = client
        self.hours = hours
        self.timeout = timeout

    async def _pull(self, asset: str) -> RecentWindow | None:
        try:
            body = await asyncio.wait_for(
                self._client.get_recent(asset, hours=self.hours, timeout=self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Recent {self.hours}h window for {asset} timed out")
            return None
        except TransportError as e:
            logger.warning(f"Recent {self.hours}h window for {asset} failed: {e}")
            return None
        except Exception as e:
            logger.exception(
                f"Recent {self.hours}h window for {asset} failed unexpectedly: {e}"
            )
            return None

        points = extract_recent_points(body)
        if points is None:
            logger.warning(f"Recent {self.hours}h window for {asset} had no point array")
        return points

    async def collect(self, assets: list[str]) -> dict[str, RecentWindow | None]:
        """Collect recent windows for all assets concurrently."""
        windows = await asyncio.gather(*(self._pull(asset) for asset in assets))
        return dict(zip(assets, windows))
