"""REST API routes."""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from market_peak.services import ServiceContext

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class TriggerResponse(BaseModel):
    """Manual trigger response."""

    triggered: bool
    success: bool
    analysis: Optional[dict[str, Any]] = None
    storage: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    timestamp: datetime


class LatestResponse(BaseModel):
    """Latest analysis response."""

    latest: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: datetime


class RecentResponse(BaseModel):
    """Recent analyses response."""

    analyses: list[dict[str, Any]]
    count: int
    error: Optional[str] = None
    timestamp: datetime


def get_context(request: Request) -> ServiceContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return context


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/status")
async def get_status(request: Request):
    """Get service status and configuration."""
    return get_context(request).status()


@router.post("/analysis/trigger", response_model=TriggerResponse)
async def trigger_analysis(request: Request):
    """Run a market peak analysis now."""
    context = get_context(request)
    outcome = await context.scheduler.trigger()

    if not outcome.success:
        logger.error(f"Trigger failed: {outcome.error}")
        status = 409 if outcome.error_type == "RunInProgressError" else 500
        raise HTTPException(
            status_code=status,
            detail={"success": False, "error": outcome.error, "error_type": outcome.error_type},
        )

    return TriggerResponse(
        triggered=True,
        success=True,
        analysis=outcome.analysis.model_dump(mode="json") if outcome.analysis else None,
        storage=asdict(outcome.storage) if outcome.storage else None,
        timestamp=_now(),
    )


@router.get("/analysis/latest", response_model=LatestResponse)
async def get_latest(request: Request):
    """Get the most recent analysis."""
    result = await get_context(request).store.latest()
    latest = result.analysis
    return LatestResponse(
        latest=latest.model_dump(mode="json", by_alias=True) if latest else None,
        error=result.error,
        timestamp=_now(),
    )


@router.get("/analysis/recent", response_model=RecentResponse)
async def get_recent(
    request: Request,
    limit: int = Query(10, ge=1, description="Maximum analyses to return (capped at 50)"),
):
    """Get recent analyses, newest first."""
    results = await get_context(request).store.recent(limit)
    analyses = [a.model_dump(mode="json", by_alias=True) for a in results.analyses]
    return RecentResponse(
        analyses=analyses,
        count=len(analyses),
        error=results.error,
        timestamp=_now(),
    )
