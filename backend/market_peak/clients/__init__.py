"""External service clients."""

from market_peak.clients.data_service import DataServiceClient
from market_peak.clients.openrouter import OpenRouterClient
from market_peak.clients.indicator_feed import IndicatorFeed, RedisIndicatorFeed

__all__ = [
    "DataServiceClient",
    "OpenRouterClient",
    "IndicatorFeed",
    "RedisIndicatorFeed",
]
