"""
LinguaLens - API Service
========================
Document translation and analysis backend: OCR, AI translation, analysis
and chat, document history, live chat, downloads and speech.
"""

import sys
import time
import uuid
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

import metrics as app_metrics
from circuit_breaker import CircuitBreakerOpenError
from config import get_settings
from database.session import dispose_engine, get_session_factory, init_models
from exceptions import AccountLockedError, LinguaLensBaseException
from logging_config import configure_logging, get_logger
from rate_limiter import RateLimitMiddleware
from routers import (
    analysis_router,
    auth_router,
    documents_router,
    downloads_router,
    messages_router,
    speech_router,
    system_router,
    translation_router,
)
from services.openai_client import close_openai_client

VERSION = "0.1.0"

# Will be configured in startup
logger = get_logger(__name__)

app = FastAPI(
    title="LinguaLens",
    description="Document translation and analysis API",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Retry-After", "X-Request-ID"],
)

app.add_middleware(RateLimitMiddleware, requests_per_minute=get_settings().rate_limit_per_minute)


# =============================================================================
# Request Correlation Middleware
# =============================================================================

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject request ID into all logs for request tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


app.add_middleware(RequestIDMiddleware)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record request metrics for observability."""

    async def dispatch(self, request: Request, call_next):
        # Skip metrics endpoint itself to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time

        # Label by route template, not the raw path
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        app_metrics.http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()

        app_metrics.http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(duration)

        return response


app.add_middleware(MetricsMiddleware)

# Register routers
app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(documents_router, prefix="/api/v1/documents", tags=["documents"])
app.include_router(translation_router, prefix="/api/v1", tags=["translation"])
app.include_router(analysis_router, prefix="/api/v1/analysis", tags=["analysis"])
app.include_router(messages_router, prefix="/api/v1/messages", tags=["messages"])
app.include_router(downloads_router, prefix="/api/v1/downloads", tags=["downloads"])
app.include_router(speech_router, prefix="/api/v1/speech", tags=["speech"])
app.include_router(system_router, prefix="/api/v1/system", tags=["system"])


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(LinguaLensBaseException)
async def lingualens_exception_handler(request: Request, exc: LinguaLensBaseException):
    """Handle all LinguaLens exceptions with structured responses."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        error_type=exc.__class__.__name__,
        message=exc.message,
        context=exc.context,
        status_code=exc.status_code,
    )

    headers = None
    if isinstance(exc, AccountLockedError):
        headers = {"Retry-After": str(max(1, int(exc.retry_after + 0.999)))}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.to_dict(),
            "path": str(request.url.path),
        },
        headers=headers,
    )


@app.exception_handler(CircuitBreakerOpenError)
async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpenError):
    """Handle circuit breaker open errors with 503 Service Unavailable."""
    logger.warning("circuit_breaker_open", breaker=exc.name, path=str(request.url.path))

    return JSONResponse(
        status_code=503,
        content={
            "error": {
                "error_type": "ServiceUnavailable",
                "message": "Service temporarily unavailable due to repeated failures",
                "path": str(request.url.path),
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.exception("unexpected_error", error=str(exc), path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "error_type": "InternalServerError",
                "message": "An unexpected error occurred",
                "path": str(request.url.path),
            }
        }
    )


# =============================================================================
# Top-level Endpoints
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    services: dict


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint for container orchestration.

    Returns 200 when the database answers, 503 otherwise.
    """
    settings = get_settings()
    services = {}
    overall_healthy = True

    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        services["database"] = "healthy"
        app_metrics.database_is_healthy.set(1)
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        services["database"] = "unhealthy"
        app_metrics.database_is_healthy.set(0)
        overall_healthy = False

    # Optional integrations are reported but never make the service unhealthy
    services["auth"] = "configured" if settings.auth_enabled else "disabled"
    services["speech"] = "elevenlabs" if settings.speech_enabled else "browser"

    response = HealthResponse(
        status="healthy" if overall_healthy else "degraded",
        version=VERSION,
        services=services,
    )

    if not overall_healthy:
        return JSONResponse(status_code=503, content=response.model_dump())

    return response


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "LinguaLens",
        "status": "operational",
        "docs": "/docs",
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# =============================================================================
# Lifecycle
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize resources on startup."""
    settings = get_settings()

    configure_logging(environment=settings.environment, log_level=settings.log_level)

    logger.info(
        "starting_backend",
        environment=settings.environment,
        model=settings.openai_model,
        auth_enabled=settings.auth_enabled,
        speech_enabled=settings.speech_enabled,
    )

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    try:
        await init_models()
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e), exc_info=True)
        print(f"⚠️  Database initialization failed: {e}", file=sys.stderr)
        # Health checks will report the issue


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup resources on shutdown."""
    logger.info("shutting_down_backend")

    await close_openai_client()
    await dispose_engine()
