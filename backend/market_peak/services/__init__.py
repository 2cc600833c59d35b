"""Business services."""

from market_peak.services.indicator_subscription import IndicatorSubscription, LatestValue
from market_peak.services.historical_cache import HistoricalSeriesCache
from market_peak.services.series_aggregator import SeriesAggregator
from market_peak.services.payload_builder import PayloadBuilder
from market_peak.services.prompt_renderer import PromptRenderer
from market_peak.services.assessment_client import AssessmentClient
from market_peak.services.pipeline import AnalysisPipeline, RunOutcome
from market_peak.services.scheduler import Scheduler
from market_peak.services.context import ServiceContext

__all__ = [
    "IndicatorSubscription",
    "LatestValue",
    "HistoricalSeriesCache",
    "SeriesAggregator",
    "PayloadBuilder",
    "PromptRenderer",
    "AssessmentClient",
    "AnalysisPipeline",
    "RunOutcome",
    "Scheduler",
    "ServiceContext",
]
