"""API module."""

from market_peak.api.routes import router

__all__ = ["router"]
