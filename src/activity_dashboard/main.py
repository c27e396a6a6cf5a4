"""Main FastAPI application for Activity Dashboard."""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from .api.routes import router as api_router
from .clock import SiteClock
from .config import Settings, get_settings
from .database.connection import db_manager
from .database.migrations import create_activity_table, upgrade_add_activity_unique_key
from .observability.logging import clear_log_context, configure_logging, set_log_context
from .services import (
    ActivityQueryService,
    ActivityStore,
    ActivityTracker,
    EventBus,
)

logger = logging.getLogger(__name__)


def configure_services(
    app: FastAPI,
    engine: AsyncEngine,
    settings: Settings,
    clock: Optional[SiteClock] = None,
) -> None:
    """Wire store, tracker, bus and query service onto ``app.state``."""
    clock = clock or SiteClock(settings.site_timezone)
    store = ActivityStore(
        engine,
        settings.get_activity_table_name(),
        max_retries=settings.increment_max_retries,
    )
    bus = EventBus()
    tracker = ActivityTracker(store, clock)
    tracker.register(bus)

    app.state.activity_store = store
    app.state.event_bus = bus
    app.state.tracker = tracker
    app.state.query_service = ActivityQueryService(
        store, clock, default_range_days=settings.default_range_days
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    settings = get_settings()

    # Configure structured logging
    configure_logging(
        environment=settings.environment,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    # Initialize database
    engine = db_manager.initialize()
    table_name = settings.get_activity_table_name()

    # Create the activity table and enforce its unique key on older installs
    await create_activity_table(table_name, engine)
    await upgrade_add_activity_unique_key(table_name, engine)

    configure_services(app, engine, settings)

    logger.info("%s v%s started", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment)
    logger.info("Activity table: %s (site time zone %s)", table_name, settings.site_timezone)

    yield

    # Shutdown
    logger.info("Shutting down %s...", settings.app_name)

    # Close database connections
    await db_manager.close()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Per-user activity tracking and dashboard chart data",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # CORS middleware, configurable origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_log_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_log_context()
        response.headers["X-Request-ID"] = request_id
        return response

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "endpoints": {
                "health": "/health",
                "docs": "/docs" if settings.debug else "Disabled in production",
                "api": {
                    "dashboard_data": "POST /api/v1/admin/activity/data",
                    "login_csv": "GET /api/v1/admin/activity/export.csv",
                    "events": "POST /api/v1/events/{login,post,comment}",
                },
            },
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/health/live")
    async def health_live():
        """Liveness probe: process is running."""
        return {"status": "alive"}

    @app.get("/health/ready")
    async def health_ready(request: Request):
        """Readiness probe: database reachable, services wired."""
        checks = {}

        try:
            from .database.connection import get_db_connection
            async with get_db_connection() as conn:
                from sqlalchemy import text
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"error: {str(e)}"
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "checks": checks},
            )

        if getattr(request.app.state, "query_service", None) is not None:
            checks["services"] = "ok"
        else:
            checks["services"] = "not initialized"
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "checks": checks},
            )

        return {"status": "ready", "checks": checks}

    # Prometheus metrics endpoint
    if settings.enable_metrics:
        @app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from .observability.metrics import generate_metrics_text
            text = generate_metrics_text()
            if text is None:
                return PlainTextResponse("# prometheus_client not installed\n", status_code=501)
            return Response(text, media_type="text/plain; version=0.0.4; charset=utf-8")

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "activity_dashboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
