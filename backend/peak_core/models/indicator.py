"""Indicator feed data models.

The feed publishes one document holding the latest state of every
bull market peak indicator:

    {"indicators": [{"indicator_name", "hit_status",
                     "current_value" | "value", "threshold"}, ...],
     "timestamp" | "collected_at": ...}

Decoding is permissive: unknown fields are ignored and the known
alternate field names are mapped onto one canonical name.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FeedDocument(BaseModel):
    """One inbound document from the indicator feed."""

    model_config = ConfigDict(frozen=True)

    id: str
    data: dict[str, Any]


class Indicator(BaseModel):
    """A named boolean signal with a measured value and a trigger threshold."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str | None = None
    hit: bool = False
    current_value: Any = None
    threshold: Any = None

    @model_validator(mode="before")
    @classmethod
    def _map_feed_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        mapped = dict(data)
        if "name" not in mapped and "indicator_name" in mapped:
            mapped["name"] = mapped["indicator_name"]
        if "hit" not in mapped and "hit_status" in mapped:
            mapped["hit"] = mapped["hit_status"]
        if mapped.get("current_value") is None and mapped.get("value") is not None:
            mapped["current_value"] = mapped["value"]
        return mapped

    @field_validator("hit", mode="before")
    @classmethod
    def _truthy(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("name", mode="before")
    @classmethod
    def _name_as_text(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)


class IndicatorSnapshot(BaseModel):
    """Latest wholesale state of the indicator feed.

    Snapshots are immutable; a new push replaces the previous snapshot
    rather than merging into it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    indicators: tuple[Indicator, ...] = ()
    timestamp: Any = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: FeedDocument) -> "IndicatorSnapshot":
        """Decode a feed document into a snapshot.

        Raises:
            pydantic.ValidationError: If an indicator entry cannot be decoded
        """
        data = document.data
        entries = data.get("indicators")
        if not isinstance(entries, list):
            entries = []
        return cls(
            id=document.id,
            indicators=tuple(Indicator.model_validate(entry) for entry in entries),
            timestamp=data.get("timestamp") or data.get("collected_at"),
            raw={"id": document.id, **data},
        )

    @property
    def hit_count(self) -> int:
        """Number of indicators currently triggered."""
        return sum(1 for indicator in self.indicators if indicator.hit)
