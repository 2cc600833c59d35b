"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

# Try to use uvloop for better performance (Unix only)
try:
    import uvloop
    uvloop.install()
    _UVLOOP_ENABLED = True
except ImportError:
    _UVLOOP_ENABLED = False

from market_peak.api import router
from market_peak.config import get_settings
from market_peak.services import ServiceContext
from market_peak.storage import Database, cache, init_database

logger = logging.getLogger(__name__)


async def _init_result_database() -> Database | None:
    """Initialize the result database; None means run without persistence."""
    try:
        db = await asyncio.wait_for(init_database(), timeout=30)
        logger.info("Database initialized")
        return db
    except asyncio.TimeoutError:
        logger.warning("Database initialization timed out - results will not be stored")
    except Exception as e:
        logger.warning(f"Database unavailable ({e}) - results will not be stored")
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting Market Peak Analysis Service...")
    logger.info(f"Event loop: {'uvloop' if _UVLOOP_ENABLED else 'asyncio'}")

    db = await _init_result_database()

    # Initialize Redis for the indicator feed with timeout
    try:
        await asyncio.wait_for(cache.init_cache(settings.redis_url), timeout=10)
    except asyncio.TimeoutError:
        logger.warning("Redis initialization timed out - running without indicator feed")

    context = ServiceContext.create(settings, db)
    await context.start()
    app.state.context = context

    logger.info(f"Data Service: {settings.data_service_url}")
    logger.info(f"Analysis every {settings.analysis_interval_minutes} min at minute 0")

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.context = None
    await context.stop()
    await cache.close_cache()

    if db is not None:
        try:
            await db.close()
            logger.info("Database connections closed")
        except Exception as e:
            logger.warning(f"Error closing database: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Market Peak Analysis",
    description="Scheduled AI assessment of crypto market cycle peaks",
    version="1.0.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    """Health check endpoint."""
    settings = get_settings()
    context = getattr(app.state, "context", None)
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "redis": await cache.ping(),
        "openrouter": bool(settings.openrouter_api_key),
        "cache_status": context.history.status() if context else None,
    }


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "market_peak.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
