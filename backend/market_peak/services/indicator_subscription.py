"""Long-lived subscription keeping the latest indicator snapshot."""

import asyncio
import logging
import threading
from typing import Generic, TypeVar

import pydantic

from market_peak.clients.indicator_feed import IndicatorFeed
from peak_core.models import FeedDocument, IndicatorSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Single-slot, last-write-wins cell.

    Readers always get a complete value: writers replace the whole
    value under the lock, never mutate it in place.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value


class IndicatorSubscription:
    """Subscription to the bull market peak indicator document.

    A background task consumes the feed and replaces the snapshot on
    every event. A missing document or a feed error clears the snapshot
    to ``None``; the task then reconnects with exponential backoff
    rather than tearing the subscription down.
    """

    def __init__(self, feed: IndicatorFeed, name: str = "BULL_PEAK"):
        self.name = name
        self._feed = feed
        self._snapshot: LatestValue[IndicatorSnapshot | None] = LatestValue(None)
        self._running = False
        self._task: asyncio.Task | None = None
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 60.0

    @property
    def is_active(self) -> bool:
        """Check if the subscription task is running."""
        return self._running and self._task is not None and not self._task.done()

    def current(self) -> IndicatorSnapshot | None:
        """Get the latest snapshot, or None when no data is available."""
        return self._snapshot.get()

    def apply(self, document: FeedDocument | None) -> None:
        """Replace the snapshot from an inbound feed event."""
        if document is None:
            logger.warning(f"[{self.name}] No latest indicator document")
            self._snapshot.set(None)
            return

        try:
            snapshot = IndicatorSnapshot.from_document(document)
        except pydantic.ValidationError as e:
            logger.error(f"[{self.name}] Undecodable indicator document: {e}")
            self._snapshot.set(None)
            return

        self._snapshot.set(snapshot)
        logger.info(
            f"[{self.name}] Updated latest ({snapshot.timestamp or 'no timestamp'}, "
            f"{snapshot.hit_count}/{len(snapshot.indicators)} hit)"
        )

    async def start(self) -> None:
        """Start consuming the feed in the background."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())

    async def teardown(self) -> None:
        """Cancel the subscription. Safe to call more than once."""
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"[{self.name}] Subscription removed")

    async def _run(self) -> None:
        """Main feed loop with reconnection."""
        while self._running:
            try:
                async for document in self._feed.listen():
                    self.apply(document)
                    self._reconnect_delay = 1.0
                logger.warning(f"[{self.name}] Indicator feed ended")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[{self.name}] Error in indicator subscription: {e}")
                self._snapshot.set(None)

            if self._running:
                logger.info(
                    f"[{self.name}] Resubscribing in {self._reconnect_delay} seconds..."
                )
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(
                    self._reconnect_delay * 2, self._max_reconnect_delay
                )
