"""Push source for the bull market peak indicator document.

The publisher stores the latest indicator document as JSON under a
Redis key and announces each write on a pub/sub channel. A listener
reads the key once on connect and again on every announcement, so a
consumer always sees the latest full document (or ``None`` once the
key has been deleted).
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Awaitable, Callable, Protocol

import orjson
import redis.asyncio as redis

from peak_core.errors import TransportError
from peak_core.models import FeedDocument

logger = logging.getLogger(__name__)


class IndicatorFeed(Protocol):
    """A long-lived push subscription to one document."""

    def listen(self) -> AsyncIterator[FeedDocument | None]:
        """Yield the document (or None when absent) on every change."""
        ...


class RedisIndicatorFeed:
    """Indicator feed backed by a Redis key plus an update channel."""

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[redis.Redis | None]],
        document_path: str,
        channel: str,
    ):
        self._client_factory = client_factory
        self.document_path = document_path
        self.channel = channel

    @property
    def document_id(self) -> str:
        """Identifier of the document (last path segment)."""
        return self.document_path.rsplit("/", 1)[-1]

    async def _read_document(self, client: redis.Redis) -> FeedDocument | None:
        raw = await client.get(self.document_path)
        if raw is None:
            return None
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise TransportError(f"Indicator document is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise TransportError("Indicator document is not a JSON object")
        return FeedDocument(id=self.document_id, data=data)

    async def listen(self) -> AsyncIterator[FeedDocument | None]:
        """Yield the current document, then one per update announcement.

        Raises:
            TransportError: If Redis is unavailable or the connection drops
        """
        client = await self._client_factory()
        if client is None:
            raise TransportError("Redis not available for indicator feed")

        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
            logger.info(f"Subscribed to indicator channel {self.channel}")
            yield await self._read_document(client)

            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                yield await self._read_document(client)
        except redis.RedisError as e:
            raise TransportError(f"Indicator feed connection error: {e}") from e
        finally:
            try:
                await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()
            except redis.RedisError as e:
                logger.debug(f"Error closing indicator pubsub: {e}")
