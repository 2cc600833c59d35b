"""OpenRouter chat-completions client."""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from peak_core.errors import ConfigurationError, RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)


class CompletionMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    content: str | None = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: CompletionMessage | None = None


class CompletionResponse(BaseModel):
    """Subset of the chat-completions response the service reads."""

    model_config = ConfigDict(extra="ignore")

    model: str | None = None
    choices: list[CompletionChoice] = []

    @property
    def text(self) -> str:
        """Content of the first choice's message, or empty string."""
        if not self.choices or self.choices[0].message is None:
            return ""
        return self.choices[0].message.content or ""


class OpenRouterClient:
    """Sends a single-message prompt to an OpenRouter model."""

    def __init__(
        self,
        api_key: str,
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        timeout: float = 90.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        prompt: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 20000,
    ) -> str:
        """
        Request a completion for one user message.

        Args:
            prompt: Rendered prompt text
            model: OpenRouter model identifier
            temperature: Sampling temperature
            max_tokens: Output length ceiling

        Returns:
            The completion text (empty string if the response has none)

        Raises:
            ConfigurationError: If no API key is configured
            RequestTimeoutError: If the request exceeds the deadline
            TransportError: On network failure or non-success response
        """
        if not self.is_configured:
            raise ConfigurationError("OpenRouter API key not configured")

        body: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        client = await self._get_client()
        try:
            response = await asyncio.wait_for(
                client.post(self.url, json=body, headers=headers),
                timeout=self.timeout,
            )
            response.raise_for_status()
            parsed = CompletionResponse.model_validate(response.json())
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise RequestTimeoutError(
                f"Completion request timed out after {self.timeout}s"
            ) from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Completion request returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Completion request failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise TransportError("Completion response could not be decoded") from e

        logger.debug(f"Completion received from {parsed.model or model}")
        return parsed.text
