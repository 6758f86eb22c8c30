"""FastAPI application for the activity tracker."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import get_settings
from .api.deps import get_activity_service, get_clock
from .api.routes import activities, sessions, statistics
from .api.exception_handlers import register_exception_handlers
from .utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    settings = get_settings()
    setup_logging(settings.log_level, settings.redact_locations)
    logger.info(f"Starting Activity Tracker v{__version__}")
    logger.info(f"Activity DB: {settings.db_path}")

    result = get_activity_service().verify_statistics()
    if not result.success:
        logger.error(f"Statistics check failed at startup: {result.error_message}")

    yield

    # Shutdown
    logger.info("Shutting down Activity Tracker")
    get_activity_service().shutdown()
    get_clock().shutdown()


app = FastAPI(
    title="Activity Tracker API",
    description="Live workout tracking and activity statistics",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["sessions"])
app.include_router(activities.router, prefix="/api/v1/activities", tags=["activities"])
app.include_router(statistics.router, prefix="/api/v1/statistics", tags=["statistics"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Activity Tracker API",
        "version": __version__,
        "status": "healthy",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
