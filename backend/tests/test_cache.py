"""Tests for the Redis connection layer."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import redis.asyncio as redis

from market_peak.storage import cache


def make_redis(reachable):
    client = MagicMock()
    if reachable:
        client.ping = AsyncMock(return_value=True)
    else:
        client.ping = AsyncMock(side_effect=redis.ConnectionError("connection refused"))
    client.aclose = AsyncMock()
    return client


class TestRedisConnection:
    """Tests for init_cache / ensure_client."""

    @pytest.mark.asyncio
    async def test_unreachable_at_startup_reconnects_later(self):
        down, up = make_redis(False), make_redis(True)
        pool = MagicMock()
        pool.disconnect = AsyncMock()

        with patch.object(cache, "ConnectionPool") as pool_cls, patch.object(
            cache.redis, "Redis", side_effect=[down, up]
        ):
            pool_cls.from_url.return_value = pool
            try:
                await cache.init_cache("redis://127.0.0.1:1/0")
                assert await cache.ping() is False

                assert await cache.ensure_client() is up
                assert await cache.ping() is True
                assert pool_cls.from_url.call_args_list[1].args[0] == "redis://127.0.0.1:1/0"
            finally:
                await cache.close_cache()

        down.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ensure_client_keeps_live_connection(self):
        up = make_redis(True)
        pool = MagicMock()
        pool.disconnect = AsyncMock()

        with patch.object(cache, "ConnectionPool") as pool_cls, patch.object(
            cache.redis, "Redis", return_value=up
        ) as redis_cls:
            pool_cls.from_url.return_value = pool
            try:
                await cache.init_cache("redis://localhost:6379/0")
                assert await cache.ensure_client() is up
                assert await cache.ensure_client() is up
                assert redis_cls.call_count == 1
            finally:
                await cache.close_cache()
