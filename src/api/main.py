"""
FastAPI application for SyncPlans.

This is the main entry point for the HTTP API, providing:
- Conflict detection and preflight endpoints
- Resolution and ignored-set endpoints
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from src.api.conflict_routes import router as conflict_router
from src.api.middleware import RequestLoggingMiddleware, get_request_id
from src.api.models import ErrorResponse, HealthResponse
from src.config import get_settings
from src.services.exceptions import ConflictEngineError

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    from src.database import init_async_db

    logger.info("Starting SyncPlans API")
    await init_async_db()
    logger.info("SyncPlans API started")

    yield

    logger.info("Shutting down SyncPlans API")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="SyncPlans API",
    description="""
# SyncPlans Conflicts API

Surfaces schedule collisions across personal, pair and family events and
records how the user wants to resolve them.

## Core Workflows

### Review conflicts
1. **POST /conflicts/detect** - Conflicts in the current event snapshot
2. **PUT /conflicts/{conflict_id}/resolution** - Keep A, keep B, or keep both
3. **POST /conflicts/plan** - Which events applying the decisions removes

### Before saving an event
- **POST /conflicts/preflight** - Conflicts the new/edited event would add
- **POST /conflicts/ignored** - "Keep both" without a durable decision

## Error Handling

**Conflicts are not errors** - they return 200.

- **400** - Preflight called without valid times
- **422** - Validation error
- **503** - Storage unavailable (`retryable: true`)
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(conflict_router)


# =============================================================================
# Exception Handlers
# =============================================================================


def _error(status_code: int, error_type: str, message: str, retryable: bool) -> JSONResponse:
    body = ErrorResponse(
        error_type=error_type,
        message=message,
        retryable=retryable,
        request_id=get_request_id() or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return _error(exc.status_code, "http_error", str(exc.detail), exc.status_code >= 500)


@app.exception_handler(ConflictEngineError)
async def conflict_engine_exception_handler(request, exc: ConflictEngineError):
    """Storage failures are non-fatal notices the client can retry."""
    logger.warning(f"Conflict engine error: {exc.message}")
    return _error(503 if exc.retryable else 400, type(exc).__name__, exc.message, exc.retryable)


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error(500, "internal_error", "An unexpected error occurred", True)


# =============================================================================
# Health Endpoint
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
async def health_check():
    """
    Check API health status.

    Returns:
        Health status including database connectivity
    """
    from src.database import check_connection

    database_connected = await check_connection()

    return HealthResponse(
        status="healthy" if database_connected else "unhealthy",
        version=API_VERSION,
        database_connected=database_connected,
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: str | None = None, port: int | None = None, reload: bool | None = None):
    """Run the API server with Uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "src.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.api_reload if reload is None else reload,
    )


if __name__ == "__main__":
    run_server()
