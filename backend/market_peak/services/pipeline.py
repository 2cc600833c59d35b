"""One end-to-end analysis run: build -> render -> assess -> persist."""

import asyncio
import logging
import time
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict

from market_peak.services.assessment_client import AssessmentClient
from market_peak.services.payload_builder import PayloadBuilder
from market_peak.services.prompt_renderer import PromptRenderer
from market_peak.storage.result_store import ResultStore, StoreHandle
from peak_core.errors import PeakAnalysisError, RunInProgressError
from peak_core.models import AssessmentResult

logger = logging.getLogger(__name__)


class RunOutcome(BaseModel):
    """Result of one pipeline run, reported to callers and the scheduler."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: bool
    trigger: str
    analysis: AssessmentResult | None = None
    storage: StoreHandle | None = None
    error: str | None = None
    error_type: str | None = None
    started_at: datetime
    duration_ms: int = 0


class AnalysisPipeline:
    """Runs the analysis pipeline with at most one run in flight.

    ``run()`` never raises: rendering, completion and validation
    failures abort the run and are reported in the outcome. Storage
    failures do not fail the run.
    """

    def __init__(
        self,
        builder: PayloadBuilder,
        renderer: PromptRenderer,
        client: AssessmentClient,
        store: ResultStore,
        prompt_name: str = "market-peak-analysis",
        prompt_version: str = "v1",
    ):
        self.builder = builder
        self.renderer = renderer
        self.client = client
        self.store = store
        self.prompt_name = prompt_name
        self.prompt_version = prompt_version
        self._lock = asyncio.Lock()
        self.last_outcome: RunOutcome | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run(self, trigger: str = "manual") -> RunOutcome:
        """Execute one run, skipping if another run is in flight."""
        started_at = datetime.now(timezone.utc)
        if self._lock.locked():
            logger.warning(f"Skipping {trigger} analysis: a run is already in progress")
            return RunOutcome(
                success=False,
                trigger=trigger,
                error="Analysis run already in progress",
                error_type=RunInProgressError.__name__,
                started_at=started_at,
            )

        async with self._lock:
            outcome = await self._run(trigger, started_at)
        self.last_outcome = outcome
        return outcome

    async def _run(self, trigger: str, started_at: datetime) -> RunOutcome:
        t0 = time.monotonic()
        logger.info(f"Starting {trigger} market peak analysis")

        try:
            payload = await self.builder.build()
            prompt = self.renderer.render(
                self.prompt_name, self.prompt_version, payload.template_data()
            )
            result = await self.client.assess(
                prompt,
                data_sources=payload.data_sources,
                unavailable_sources=payload.unavailable_sources,
                prompt_version=self.prompt_version,
                started_at=t0,
            )
        except PeakAnalysisError as e:
            logger.error(f"Analysis failed ({type(e).__name__}): {e}")
            return self._failure(trigger, started_at, t0, e)
        except Exception as e:
            logger.exception(f"Analysis failed unexpectedly: {e}")
            return self._failure(trigger, started_at, t0, e)

        try:
            storage = await self.store.append(result)
        except Exception as e:
            logger.exception(f"Unexpected error storing assessment: {e}")
            storage = StoreHandle(stored=False, reason=str(e))
        logger.info(f"Market Peak Score: {result.score}/100 ({result.interpretation})")

        return RunOutcome(
            success=True,
            trigger=trigger,
            analysis=result,
            storage=storage,
            started_at=started_at,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

    @staticmethod
    def _failure(
        trigger: str, started_at: datetime, t0: float, error: Exception
    ) -> RunOutcome:
        return RunOutcome(
            success=False,
            trigger=trigger,
            error=str(error),
            error_type=type(error).__name__,
            started_at=started_at,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
