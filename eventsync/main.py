"""Main FastAPI application entry point."""

import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from eventsync import __version__
from eventsync.config import get_settings
from eventsync.database import close_database, get_database, get_setting
from eventsync.limiter import limiter
from eventsync.sync.audit import cleanup_sync_log
from eventsync.sync.coordinator import build_coordinator
from eventsync.sync.strategies import WebhookStrategy

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("Starting Event Sync Bridge...")
    logger.info(f"Database: {settings.database_path}")
    logger.info(f"Sync strategy: {settings.sync_strategy}")

    db = await get_database()
    logger.info("Database initialized")

    try:
        await cleanup_sync_log(db, settings.sync_log_retention_days)
    except Exception as e:
        logger.warning(f"Sync log cleanup failed: {e}")

    http_client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    coordinator = build_coordinator(settings, db, http_client)

    # A webhook pause set through the API survives restarts
    if isinstance(coordinator.strategy, WebhookStrategy):
        enabled_setting = await get_setting("webhook_enabled")
        if enabled_setting:
            coordinator.strategy.dispatcher.set_enabled(
                enabled_setting.get("value") == "true"
            )

    config_status = coordinator.get_config_status()
    if config_status.configured:
        logger.info("Event sync configured")
    else:
        logger.warning(f"Event sync missing configuration: {', '.join(config_status.missing)}")

    app.state.coordinator = coordinator
    app.state.http_client = http_client

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.coordinator = None
    await http_client.aclose()
    await close_database()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Event Sync Bridge",
    description="Outbound sync of calendar events to a remote CRM",
    version=__version__,
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
settings = get_settings()
allowed_origins = [settings.public_url]
# Also allow localhost variants for development
if settings.public_url.startswith("http://localhost") or settings.public_url.startswith("https://localhost"):
    allowed_origins.extend([
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    try:
        db = await get_database()
        await db.execute("SELECT 1")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": str(e)},
        )


# Include routers
from eventsync.api import api_router

app.include_router(api_router)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    log_level = settings.log_level.lower()

    uvicorn.run(
        "eventsync.main:app",
        host="0.0.0.0",
        port=3000,
        log_level=log_level,
        reload=False,
    )
