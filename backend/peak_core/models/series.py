"""Price series data models."""

from pydantic import BaseModel, ConfigDict


class DailyClosePoint(BaseModel):
    """One daily close. ``close`` is always a finite number."""

    model_config = ConfigDict(frozen=True)

    timestamp: int | float | str
    close: float
