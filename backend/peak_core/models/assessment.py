"""Assessment payload and result models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Score bands used when reporting a result
PEAK_LIKELY_SCORE = 60
MIXED_SIGNALS_SCORE = 25


class AssessmentPayload(BaseModel):
    """Normalized market state assembled for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    generated_at: datetime
    template_fields: dict[str, Any]
    data_sources: tuple[str, ...]
    unavailable_sources: tuple[str, ...] = ()

    def template_data(self) -> dict[str, Any]:
        """Get the placeholder values for prompt rendering."""
        return {"timestamp": self.generated_at.isoformat(), **self.template_fields}


class AnalysisMetadata(BaseModel):
    """Run metadata attached to every assessment."""

    model_config = ConfigDict(frozen=True)

    model: str
    data_sources: list[str]
    unavailable_sources: list[str] = Field(default_factory=list)
    prompt_version: str | None = None
    collection_duration_ms: int = 0


class AssessmentResult(BaseModel):
    """Validated market peak verdict.

    Keys returned by the model beyond the required four are kept as
    extra fields so they are persisted alongside the verdict.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    score: int | float
    analysis: str
    reasoning: str
    key_factors: list[str]
    metadata: AnalysisMetadata | None = None

    @field_validator("key_factors", mode="before")
    @classmethod
    def _factors_as_text(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item if isinstance(item, str) else str(item) for item in value]
        return value

    @property
    def interpretation(self) -> str:
        """Human-readable band for the score."""
        if self.score >= PEAK_LIKELY_SCORE:
            return "Peak Likely"
        if self.score >= MIXED_SIGNALS_SCORE:
            return "Mixed Signals"
        return "Normal"


class StoredAssessment(AssessmentResult):
    """An assessment as read back from the result store."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str
    timestamp: datetime
    created_at: datetime | None = Field(default=None, alias="createdAt")
    service: str | None = None
    service_version: str | None = Field(default=None, alias="serviceVersion")
