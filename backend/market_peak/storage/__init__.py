"""Data storage layer."""

from market_peak.storage.database import Database, get_database, init_database
from market_peak.storage.assessment_repo import AssessmentRepository
from market_peak.storage.result_store import (
    LatestResult,
    RecentResults,
    ResultStore,
    StoreHandle,
    clamp_limit,
)
from market_peak.storage import cache

__all__ = [
    "Database",
    "get_database",
    "init_database",
    "AssessmentRepository",
    "LatestResult",
    "RecentResults",
    "ResultStore",
    "StoreHandle",
    "clamp_limit",
    "cache",
]
