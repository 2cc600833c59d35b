"""Completion call and structured verdict extraction."""

import logging
import time

from market_peak.clients.openrouter import OpenRouterClient
from peak_core.extraction import build_result, parse_json_from_text
from peak_core.models import AnalysisMetadata, AssessmentResult

logger = logging.getLogger(__name__)


class AssessmentClient:
    """Sends a rendered prompt to the reasoning model and parses its verdict.

    The completion is made at a fixed low temperature for reproducible
    verdicts. Every returned result carries run metadata: the model,
    the contributing and unavailable data sources, and the elapsed
    wall-clock time since ``started_at``.
    """

    def __init__(
        self,
        client: OpenRouterClient,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 20000,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def assess(
        self,
        prompt: str,
        data_sources: tuple[str, ...] | list[str] = (),
        unavailable_sources: tuple[str, ...] | list[str] = (),
        prompt_version: str | None = None,
        started_at: float | None = None,
    ) -> AssessmentResult:
        """
        Assess a rendered prompt.

        Args:
            prompt: Rendered prompt text
            data_sources: Sources the payload was built from
            unavailable_sources: Sources that degraded to placeholders
            prompt_version: Template version used for the prompt
            started_at: ``time.monotonic()`` at run start (defaults to now)

        Raises:
            ConfigurationError: No API key configured
            TransportError: Completion call failed (RequestTimeoutError on deadline)
            NoStructuredOutputError: No JSON in the completion text
            ValidationError: JSON does not have the verdict shape
        """
        t0 = started_at if started_at is not None else time.monotonic()

        text = await self._client.complete(
            prompt,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        parsed = parse_json_from_text(text)

        metadata = AnalysisMetadata(
            model=self.model,
            data_sources=list(data_sources),
            unavailable_sources=list(unavailable_sources),
            prompt_version=prompt_version,
            collection_duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return build_result(parsed, metadata)
