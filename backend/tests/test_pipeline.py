"""End-to-end tests for the analysis pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import orjson
import pytest

from market_peak.clients.openrouter import OpenRouterClient
from market_peak.services.assessment_client import AssessmentClient
from market_peak.services.indicator_subscription import IndicatorSubscription
from market_peak.services.payload_builder import PayloadBuilder
from market_peak.services.pipeline import AnalysisPipeline
from market_peak.services.prompt_renderer import PromptRenderer
from market_peak.storage.result_store import ResultStore, StoreHandle
from peak_core.errors import StoreUnavailableError
from peak_core.models import DailyClosePoint, FeedDocument

ASSETS = ["bitcoin", "ethereum", "solana"]
LABELS = {"bitcoin": "BTC", "ethereum": "ETH", "solana": "SOL"}

VERDICT = {
    "score": 8,
    "analysis": "Early stage of the cycle.",
    "reasoning": "Only 2 of 10 indicators are triggered.",
    "key_factors": ["Pi Cycle not crossed", "Low MVRV"],
}


class InMemoryBackend:
    def __init__(self, fail=False):
        self.rows = []
        self.fail = fail

    async def insert(self, document, timestamp, score, service):
        if self.fail:
            raise StoreUnavailableError("connection refused")
        self.rows.append(document)
        return f"doc-{len(self.rows)}"

    async def get_recent(self, limit):
        return [(f"doc-{i + 1}", doc) for i, doc in reversed(list(enumerate(self.rows)))]


def indicator_doc(total=10, hits=2):
    return FeedDocument(
        id="latest",
        data={
            "indicators": [
                {"indicator_name": f"Indicator {i}", "hit_status": i < hits,
                 "current_value": i * 1.5, "threshold": 10}
                for i in range(total)
            ],
            "timestamp": "2025-06-01T00:00:00Z",
        },
    )


def daily_series(n=900):
    start = 1_640_995_200_000
    return tuple(
        DailyClosePoint(timestamp=start + i * 86_400_000, close=20_000.0 + i) for i in range(n)
    )


def completion_client(content, prompts=None):
    def handler(request):
        if prompts is not None:
            prompts.append(orjson.loads(request.content)["messages"][0]["content"])
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": content}}]}
        )

    client = OpenRouterClient("test-key", transport=httpx.MockTransport(handler))
    return AssessmentClient(client, model="openai/gpt-5-mini")


def make_pipeline(content, store=None, snapshot=True, prompts=None):
    subscription = IndicatorSubscription(MagicMock())
    if snapshot:
        subscription.apply(indicator_doc())

    history = MagicMock()
    series = daily_series()
    history.get = AsyncMock(return_value=series)

    aggregator = MagicMock()
    aggregator.collect = AsyncMock(
        return_value={a: [{"timestamp": i, "price": 1.0} for i in range(1440)] for a in ASSETS}
    )

    builder = PayloadBuilder(subscription, history, aggregator, ASSETS, LABELS)
    store = store if store is not None else ResultStore(InMemoryBackend())
    return AnalysisPipeline(
        builder,
        PromptRenderer(),
        completion_client(content, prompts),
        store,
    )


def fenced(verdict):
    return "Analysis follows.\n```json\n" + orjson.dumps(verdict).decode() + "\n```\nDone."


class TestAnalysisPipeline:
    """Tests for AnalysisPipeline.run."""

    @pytest.mark.asyncio
    async def test_successful_run_is_stored(self):
        backend = InMemoryBackend()
        prompts = []
        pipeline = make_pipeline(fenced(VERDICT), store=ResultStore(backend), prompts=prompts)

        outcome = await pipeline.run(trigger="scheduled")

        assert outcome.success is True
        assert outcome.trigger == "scheduled"
        assert outcome.analysis.score == 8
        assert outcome.storage.stored is True
        assert len(backend.rows) == 1
        stored = backend.rows[0]
        assert stored["score"] == 8
        assert stored["metadata"]["data_sources"] == ["BULL_PEAK", "BTC", "ETH", "SOL"]
        assert stored["metadata"]["unavailable_sources"] == []
        assert stored["metadata"]["prompt_version"] == "v1"
        assert pipeline.last_outcome is outcome

        prompt = prompts[0]
        assert "Indicator 0: true (Value: 0.0, Threshold: 10)" in prompt
        assert "Indicator 9: false" in prompt
        assert "{{" not in prompt
        assert "[missing:" not in prompt

    @pytest.mark.asyncio
    async def test_prose_only_completion_fails_without_storing(self):
        store = MagicMock()
        store.append = AsyncMock()
        pipeline = make_pipeline("I think the market is not at a peak.", store=store)

        outcome = await pipeline.run()

        assert outcome.success is False
        assert outcome.error_type == "NoStructuredOutputError"
        assert outcome.analysis is None
        store.append.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_verdict_fails(self):
        store = MagicMock()
        store.append = AsyncMock()
        verdict = {k: v for k, v in VERDICT.items() if k != "reasoning"}
        pipeline = make_pipeline(fenced(verdict), store=store)

        outcome = await pipeline.run()

        assert outcome.success is False
        assert outcome.error_type == "ValidationError"
        assert "reasoning" in outcome.error
        store.append.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_unavailable_still_succeeds(self):
        pipeline = make_pipeline(fenced(VERDICT), store=ResultStore(InMemoryBackend(fail=True)))

        outcome = await pipeline.run()

        assert outcome.success is True
        assert outcome.analysis.score == 8
        assert outcome.storage.stored is False
        assert "connection refused" in outcome.storage.reason

    @pytest.mark.asyncio
    async def test_unexpected_store_error_still_succeeds(self):
        store = MagicMock()
        store.append = AsyncMock(side_effect=RuntimeError("driver bug"))
        outcome = await make_pipeline(fenced(VERDICT), store=store).run()

        assert outcome.success is True
        assert outcome.storage == StoreHandle(stored=False, reason="driver bug")

    @pytest.mark.asyncio
    async def test_missing_snapshot_reported_unavailable(self):
        backend = InMemoryBackend()
        pipeline = make_pipeline(fenced(VERDICT), store=ResultStore(backend), snapshot=False)

        outcome = await pipeline.run()

        assert outcome.success is True
        assert outcome.analysis.metadata.unavailable_sources == ["BULL_PEAK"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_reported(self):
        pipeline = make_pipeline(fenced(VERDICT))
        pipeline.builder.build = AsyncMock(side_effect=KeyError("boom"))

        outcome = await pipeline.run()

        assert outcome.success is False
        assert outcome.error_type == "KeyError"

    @pytest.mark.asyncio
    async def test_single_run_in_flight(self):
        pipeline = make_pipeline(fenced(VERDICT))
        release = asyncio.Event()
        real_build = pipeline.builder.build

        async def slow_build():
            await release.wait()
            return await real_build()

        pipeline.builder.build = slow_build

        first = asyncio.create_task(pipeline.run(trigger="scheduled"))
        await asyncio.sleep(0.01)
        assert pipeline.is_running

        second = await pipeline.run(trigger="manual")
        assert second.success is False
        assert second.error_type == "RunInProgressError"

        release.set()
        assert (await first).success is True
        assert not pipeline.is_running
