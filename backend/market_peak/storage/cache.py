"""Redis connection layer.

Holds the shared Redis connection used by the indicator feed. When
Redis cannot be reached the client stays ``None`` and the feed
degrades to "no indicator data" instead of stopping the service;
``ensure_client`` retries the connection on each feed reconnect.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from market_peak.config import get_settings

logger = logging.getLogger(__name__)

# Global connection pool
_pool: ConnectionPool | None = None
_client: redis.Redis | None = None
_redis_url: str | None = None


async def init_cache(redis_url: str | None = None) -> None:
    """Initialize Redis connection pool."""
    global _pool, _client, _redis_url

    if _client is not None:
        return

    url = redis_url or _redis_url or get_settings().redis_url
    _redis_url = url
    _pool = ConnectionPool.from_url(
        url,
        max_connections=10,
        socket_connect_timeout=5,
        decode_responses=False,  # Documents are decoded with orjson
    )
    _client = redis.Redis(connection_pool=_pool)

    # Test connection
    try:
        await _client.ping()
        logger.info(f"Redis connected: {url}")
    except (redis.ConnectionError, OSError) as e:
        logger.warning(f"Redis connection failed: {e}. Indicator feed will retry on reconnect.")
        await _client.aclose()
        await _pool.disconnect()
        _client = None
        _pool = None


async def close_cache() -> None:
    """Close Redis connection pool."""
    global _pool, _client

    if _client is not None:
        await _client.aclose()
        _client = None

    if _pool is not None:
        await _pool.disconnect()
        _pool = None

    logger.info("Redis connection closed")


async def ensure_client() -> redis.Redis | None:
    """Get the Redis client, reconnecting if the last attempt failed."""
    if _client is None:
        await init_cache()
    return _client


async def ping() -> bool:
    """Check if Redis is responsive.

    Returns:
        True if Redis responds to PING
    """
    if _client is None:
        return False

    try:
        return await _client.ping()
    except redis.RedisError:
        return False
