"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from competitor_timeline import __version__
from competitor_timeline.api.middleware.timeout import TimeoutMiddleware
from competitor_timeline.api.routes import boards, channels, force, health, ingest, posts
from competitor_timeline.api.services import AppServices
from competitor_timeline.config.settings import get_settings
from competitor_timeline.ingestion.errors import (
    BatchValidationError,
    IngestError,
    ThrottleError,
)
from competitor_timeline.observability.logging import bind_context, clear_context
from competitor_timeline.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build and start services unless the caller injected its own."""
    logger.info("Competitor Timeline API starting up")

    owned = getattr(app.state, "services", None) is None
    if owned:
        services = AppServices.build()
        await services.start()
        app.state.services = services

    yield

    logger.info("Competitor Timeline API shutting down")
    if owned:
        await app.state.services.close()


def create_app(services: AppServices | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Pre-built services (tests); started and closed by the caller

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "ingest", "description": "Agent batch ingestion and manual scrape queue"},
        {"name": "boards", "description": "Tracked competitors and dashboard stats"},
        {"name": "channels", "description": "Per-platform channel configuration"},
        {"name": "posts", "description": "Timeline post listing"},
    ]

    app = FastAPI(
        title="Competitor Timeline API",
        description="""
Ingestion and timeline API for competitor social-media tracking.

## Authentication

`POST /api/ingest` and `POST /api/ingest/force` require
`Authorization: Bearer <INGEST_API_KEY>`. Ingestion is limited to one
accepted batch per credential per window.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    if services is not None:
        app.state.services = services

    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Added before the logging middleware so it wraps the whole request
    if settings.request_timeout_seconds > 0:
        app.add_middleware(
            TimeoutMiddleware,
            timeout_seconds=settings.request_timeout_seconds,
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return response
        finally:
            clear_context()

    @app.exception_handler(IngestError)
    async def ingest_error_handler(request: Request, exc: IngestError):
        content = {"detail": exc.message, "error_type": exc.reason}
        headers = None

        if isinstance(exc, BatchValidationError):
            content["errors"] = exc.errors
        else:
            get_metrics().record_rejection(exc.reason)
        if isinstance(exc, ThrottleError):
            headers = {"Retry-After": str(max(1, round(exc.retry_after)))}

        logger.info(
            "Request rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error_type=exc.reason,
        )
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(ingest.router, tags=["ingest"])
    app.include_router(force.router, tags=["ingest"])
    app.include_router(boards.router, tags=["boards"])
    app.include_router(channels.router, tags=["channels"])
    app.include_router(posts.router, tags=["posts"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Competitor Timeline API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
