"""Service context: the one owner of every pipeline component.

Built once at startup and handed to the HTTP layer, so no component
state lives in module globals.
"""

import logging
from dataclasses import dataclass
from datetime import time
from typing import Any

from market_peak.clients import DataServiceClient, OpenRouterClient, RedisIndicatorFeed
from market_peak.config import Settings
from market_peak.services.assessment_client import AssessmentClient
from market_peak.services.historical_cache import HistoricalSeriesCache
from market_peak.services.indicator_subscription import IndicatorSubscription
from market_peak.services.payload_builder import PayloadBuilder
from market_peak.services.pipeline import AnalysisPipeline
from market_peak.services.prompt_renderer import PromptRenderer
from market_peak.services.scheduler import Scheduler
from market_peak.services.series_aggregator import SeriesAggregator
from market_peak.storage import AssessmentRepository, Database, ResultStore, cache

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """All long-lived components of the service."""

    settings: Settings
    data_client: DataServiceClient
    completion_client: OpenRouterClient
    subscription: IndicatorSubscription
    history: HistoricalSeriesCache
    aggregator: SeriesAggregator
    builder: PayloadBuilder
    renderer: PromptRenderer
    assessor: AssessmentClient
    store: ResultStore
    pipeline: AnalysisPipeline
    scheduler: Scheduler

    @classmethod
    def create(cls, settings: Settings, database: Database | None) -> "ServiceContext":
        """Wire all components from settings.

        Args:
            settings: Application settings
            database: Result database, or None to run without persistence
        """
        data_client = DataServiceClient(settings.data_service_url)
        completion_client = OpenRouterClient(
            api_key=settings.openrouter_api_key,
            url=settings.openrouter_url,
            timeout=settings.request_timeout,
        )
        feed = RedisIndicatorFeed(
            client_factory=cache.ensure_client,
            document_path=settings.indicator_document_path,
            channel=settings.indicator_channel,
        )
        subscription = IndicatorSubscription(feed, name=settings.indicator_source)
        history = HistoricalSeriesCache(
            data_client,
            assets=settings.tracked_assets,
            days=settings.daily_days,
            max_points=settings.daily_max_points,
            timeout=settings.daily_timeout,
        )
        aggregator = SeriesAggregator(
            data_client,
            hours=settings.recent_window_hours,
            timeout=settings.recent_timeout,
        )
        builder = PayloadBuilder(
            subscription,
            history,
            aggregator,
            assets=settings.tracked_assets,
            asset_labels=settings.asset_labels,
            max_daily_points=settings.daily_max_points,
        )
        renderer = PromptRenderer(strict=settings.debug)
        assessor = AssessmentClient(
            completion_client,
            model=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
        store = ResultStore(
            AssessmentRepository(database) if database is not None else None,
            service_name=settings.service_name,
            service_version=settings.service_version,
            max_limit=settings.recent_limit_max,
        )
        pipeline = AnalysisPipeline(
            builder,
            renderer,
            assessor,
            store,
            prompt_name=settings.prompt_name,
            prompt_version=settings.prompt_version,
        )
        scheduler = Scheduler(
            pipeline,
            history,
            interval_minutes=settings.analysis_interval_minutes,
            daily_refresh_at=time(settings.daily_refresh_hour, settings.daily_refresh_minute),
        )
        return cls(
            settings=settings,
            data_client=data_client,
            completion_client=completion_client,
            subscription=subscription,
            history=history,
            aggregator=aggregator,
            builder=builder,
            renderer=renderer,
            assessor=assessor,
            store=store,
            pipeline=pipeline,
            scheduler=scheduler,
        )

    async def start(self) -> None:
        """Start the indicator subscription and the scheduled jobs."""
        await self.subscription.start()
        await self.scheduler.start()

    async def stop(self) -> None:
        """Stop background work and close HTTP clients."""
        await self.scheduler.stop()
        await self.subscription.teardown()
        await self.data_client.close()
        await self.completion_client.close()

    def status(self) -> dict[str, Any]:
        """Configuration, subscription and cache status."""
        settings = self.settings
        return {
            "service": settings.service_name,
            "version": settings.service_version,
            "status": "running",
            "configuration": {
                "analysis_interval_minutes": settings.analysis_interval_minutes,
                "model": settings.model,
                "prompt": f"{settings.prompt_name}-{settings.prompt_version}",
                "data_service_url": settings.data_service_url,
                "tracked_assets": settings.tracked_assets,
            },
            "openrouter": self.completion_client.is_configured,
            "storage": self.store.is_available,
            "listeners": {
                self.subscription.name.lower(): self.subscription.is_active,
            },
            "indicator_snapshot": self.subscription.current() is not None,
            "cache": self.history.status(),
            "pipeline_running": self.pipeline.is_running,
        }
