"""Assessment Content Backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# CRITICAL ORDER: configure_structlog MUST be called before all other app imports
# to avoid the structlog cache pitfall (structlog caches the processor chain on first use).
from app.core.logging import configure_structlog
from app.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import (
    ContentError,
    ContentNotConfiguredError,
    ContentNotFoundError,
    ContentStoreError,
    ContentValidationError,
    IdentityArchivedError,
    RevisionConflictError,
)
from app.db import close_db, get_session_factory, init_db
from app.middleware.correlation import get_correlation_id, setup_correlation_middleware
from app.store.memory import InMemoryContentRepository
from app.store.sql import SqlContentRepository

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, store_backend=settings.content_store_backend)

    if settings.content_store_backend == "memory":
        app.state.content_repository = InMemoryContentRepository()
        logger.warning("content_store_in_memory", reason="CONTENT_STORE_BACKEND=memory")
    else:
        await init_db()
        app.state.content_repository = SqlContentRepository(get_session_factory())
        logger.info("db_initialized")

    yield

    logger.info("shutdown_begin")
    await close_db()
    logger.info("shutdown_complete")


def _error_response(request: Request, status_code: int, detail: str, exc: Exception, **extra) -> JSONResponse:
    """Log with a debug_id and return a sanitized body."""
    debug_id = str(uuid.uuid4())
    log = logger.error if status_code >= 500 else logger.info
    log(
        "content_error",
        status_code=status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=status_code, content={"detail": detail, "debug_id": debug_id, **extra})


async def content_validation_handler(request: Request, exc: ContentValidationError) -> JSONResponse:
    errors = [e.to_dict() if hasattr(e, "to_dict") else {"location": "", "message": str(e)} for e in exc.errors]
    return _error_response(request, 422, str(exc), exc, errors=errors)


async def content_error_handler(request: Request, exc: ContentError) -> JSONResponse:
    """Map the content exception hierarchy onto HTTP statuses."""
    if isinstance(exc, ContentNotFoundError):
        return _error_response(request, 404, str(exc), exc)
    if isinstance(exc, (IdentityArchivedError, RevisionConflictError)):
        return _error_response(request, 409, str(exc), exc)
    if isinstance(exc, ContentNotConfiguredError):
        # Reason stays in the logs; callers only learn that nothing is configured
        return _error_response(request, 404, "No content is configured for this request", exc)
    if isinstance(exc, ContentStoreError):
        return _error_response(request, 503, "Content store unavailable", exc)
    return _error_response(request, 500, "Internal server error", exc)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking."""
    debug_id = str(uuid.uuid4())
    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors. Logs the traceback, returns a generic 500."""
    debug_id = str(uuid.uuid4())
    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Versioned question sets and results packs with draft, preview and publish channels",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys([settings.frontend_url, *settings.cors_origins])),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    app.exception_handler(ContentValidationError)(content_validation_handler)
    app.exception_handler(ContentError)(content_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
