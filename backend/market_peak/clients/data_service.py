"""Price data service REST client for recent and daily series."""

import asyncio
from typing import Any

import httpx

from peak_core.errors import RequestTimeoutError, TransportError


class DataServiceClient:
    """Client for the crypto price data service.

    Endpoints:
        GET /<asset>?hours=<n>        recent high-resolution window
        GET /<asset>/daily?days=<n>   daily history, ``{"data": [...]}``
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """GET an endpoint and decode the JSON body."""
        client = await self._get_client()
        deadline = timeout if timeout is not None else self.timeout
        try:
            response = await asyncio.wait_for(
                client.get(endpoint, params=params, timeout=deadline),
                timeout=deadline,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise RequestTimeoutError(f"GET {endpoint} timed out after {deadline}s") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"GET {endpoint} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"GET {endpoint} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"GET {endpoint} returned invalid JSON") from e

    async def get_recent(
        self, asset: str, hours: int = 24, timeout: float | None = None
    ) -> Any:
        """Fetch the recent window for an asset (raw response body)."""
        return await self._get(f"/{asset}", {"hours": hours}, timeout)

    async def get_daily(
        self, asset: str, days: int = 900, timeout: float | None = None
    ) -> list[Any]:
        """Fetch raw daily points for an asset.

        Returns:
            The ``data`` array of the response (empty if absent)
        """
        body = await self._get(f"/{asset}/daily", {"days": days}, timeout)
        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, list) else []
