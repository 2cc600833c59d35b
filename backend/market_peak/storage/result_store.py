"""Best-effort persistence of validated assessments.

Persistence never turns a successful assessment into a failed run:
``append`` reports ``stored=False`` with a reason and ``recent``
degrades to an empty list with an error marker when the backing store
is unavailable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import pydantic

from peak_core.errors import StoreUnavailableError
from peak_core.models import AssessmentResult, StoredAssessment

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 50

STORE_NOT_AVAILABLE = "store_not_available"


class AssessmentBackend(Protocol):
    async def insert(
        self, document: dict[str, Any], timestamp: datetime, score: float, service: str
    ) -> str: ...

    async def get_recent(self, limit: int) -> list[tuple[str, dict[str, Any]]]: ...


@dataclass(frozen=True)
class StoreHandle:
    """Outcome of an append."""

    stored: bool
    id: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class LatestResult:
    """Outcome of a latest-result query."""

    analysis: StoredAssessment | None = None
    error: str | None = None


@dataclass(frozen=True)
class RecentResults:
    """Outcome of a recent-results query."""

    analyses: list[StoredAssessment] = field(default_factory=list)
    error: str | None = None


def clamp_limit(limit: int, maximum: int = MAX_RECENT_LIMIT) -> int:
    """Clamp a caller-supplied limit to ``[1, maximum]``."""
    return max(1, min(int(limit), maximum))


class ResultStore:
    """Appends assessments and answers latest / recent queries."""

    def __init__(
        self,
        backend: AssessmentBackend | None,
        service_name: str = "market-peak-analysis-service",
        service_version: str = "1.0.0",
        max_limit: int = MAX_RECENT_LIMIT,
    ):
        self._backend = backend
        self.service_name = service_name
        self.service_version = service_version
        self.max_limit = max_limit

    @property
    def is_available(self) -> bool:
        return self._backend is not None

    def _document(self, result: AssessmentResult, now: datetime) -> dict[str, Any]:
        return {
            **result.model_dump(mode="json"),
            "timestamp": now.isoformat(),
            "createdAt": now.isoformat(),
            "service": self.service_name,
            "serviceVersion": self.service_version,
        }

    async def append(self, result: AssessmentResult) -> StoreHandle:
        """Persist a result with service metadata."""
        if self._backend is None:
            return StoreHandle(stored=False, reason=STORE_NOT_AVAILABLE)

        now = datetime.now(timezone.utc)
        try:
            doc_id = await self._backend.insert(
                self._document(result, now),
                timestamp=now,
                score=float(result.score),
                service=self.service_name,
            )
        except StoreUnavailableError as e:
            logger.warning(f"Assessment not stored: {e}")
            return StoreHandle(stored=False, reason=str(e))

        logger.info(f"Assessment stored: {doc_id}")
        return StoreHandle(stored=True, id=doc_id)

    async def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> RecentResults:
        """Get recent assessments, newest first (at most ``max_limit``)."""
        if self._backend is None:
            return RecentResults(error=STORE_NOT_AVAILABLE)

        try:
            rows = await self._backend.get_recent(clamp_limit(limit, self.max_limit))
        except StoreUnavailableError as e:
            logger.warning(f"Recent assessments unavailable: {e}")
            return RecentResults(error=str(e))

        analyses = []
        for doc_id, document in rows[: self.max_limit]:
            try:
                analyses.append(StoredAssessment.model_validate({**document, "id": doc_id}))
            except pydantic.ValidationError as e:
                logger.warning(f"Skipping malformed stored assessment {doc_id}: {e}")
        return RecentResults(analyses=analyses)

    async def latest(self) -> LatestResult:
        """Get the most recent assessment, if any."""
        results = await self.recent(1)
        return LatestResult(
            analysis=results.analyses[0] if results.analyses else None,
            error=results.error,
        )
