"""Data models."""

from peak_core.models.indicator import FeedDocument, Indicator, IndicatorSnapshot
from peak_core.models.series import DailyClosePoint
from peak_core.models.assessment import (
    AnalysisMetadata,
    AssessmentPayload,
    AssessmentResult,
    StoredAssessment,
)

__all__ = [
    "FeedDocument",
    "Indicator",
    "IndicatorSnapshot",
    "DailyClosePoint",
    "AnalysisMetadata",
    "AssessmentPayload",
    "AssessmentResult",
    "StoredAssessment",
]
