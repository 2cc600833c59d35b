"""Tests for whole-request deadlines against a slow-drip HTTP server."""

import asyncio
import time

import orjson
import pytest

from market_peak.clients import DataServiceClient, OpenRouterClient
from peak_core.errors import RequestTimeoutError

DRIP_INTERVAL = 0.15


class DripServer:
    """Local HTTP server that answers every request one byte at a time.

    Each byte arrives well within any per-read timeout, so only a
    deadline on the whole request can stop the client.
    """

    def __init__(self, body: bytes, interval: float = DRIP_INTERVAL):
        self.body = body
        self.interval = interval
        self._server: asyncio.AbstractServer | None = None
        self._handlers: list[asyncio.Task] = []

    @property
    def url(self) -> str:
        host, port = self._server.sockets[0].getsockname()[:2]
        return f"http://{host}:{port}"

    async def __aenter__(self):
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self

    async def __aexit__(self, *exc):
        self._server.close()
        for task in self._handlers:
            task.cancel()
        await asyncio.gather(*self._handlers, return_exceptions=True)

    async def _handle(self, reader, writer):
        self._handlers.append(asyncio.current_task())
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/json\r\n"
                b"Content-Length: " + str(len(self.body)).encode() + b"\r\n\r\n"
            )
            await writer.drain()
            for i in range(len(self.body)):
                writer.write(self.body[i : i + 1])
                await writer.drain()
                await asyncio.sleep(self.interval)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()


class TestRequestDeadlines:
    """A response trickling in past the deadline raises RequestTimeoutError."""

    @pytest.mark.asyncio
    async def test_completion_deadline(self):
        body = orjson.dumps({"choices": [{"message": {"content": "{}"}}]})
        async with DripServer(body) as server:
            client = OpenRouterClient("test-key", url=f"{server.url}/chat", timeout=0.5)
            start = time.monotonic()
            try:
                with pytest.raises(RequestTimeoutError):
                    await client.complete("prompt", model="m")
            finally:
                await client.close()
            elapsed = time.monotonic() - start

        assert elapsed < 1.5

    @pytest.mark.asyncio
    async def test_daily_fetch_deadline(self):
        body = orjson.dumps({"data": [{"timestamp": i, "close": 1.0} for i in range(20)]})
        async with DripServer(body) as server:
            client = DataServiceClient(server.url, timeout=0.5)
            start = time.monotonic()
            try:
                with pytest.raises(RequestTimeoutError):
                    await client.get_daily("bitcoin", days=900)
            finally:
                await client.close()
            elapsed = time.monotonic() - start

        assert elapsed < 1.5

    @pytest.mark.asyncio
    async def test_per_call_deadline_overrides_default(self):
        body = orjson.dumps({"prices": [1, 2, 3, 4, 5, 6, 7, 8]})
        async with DripServer(body) as server:
            client = DataServiceClient(server.url, timeout=60.0)
            start = time.monotonic()
            try:
                with pytest.raises(RequestTimeoutError):
                    await client.get_recent("bitcoin", timeout=0.4)
            finally:
                await client.close()

        assert time.monotonic() - start < 1.5

    @pytest.mark.asyncio
    async def test_fast_response_within_deadline(self):
        body = orjson.dumps({"data": []})
        async with DripServer(body, interval=0.0) as server:
            client = DataServiceClient(server.url, timeout=2.0)
            try:
                assert await client.get_daily("bitcoin") == []
            finally:
                await client.close()
