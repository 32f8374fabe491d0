import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_content_config
from app.core.config import get_settings
from app.services.fallback import FileFallbackLoader

logger = structlog.get_logger(__name__)

router = APIRouter()

SERVICE = "content-backend"


@router.get("/health")
async def health_check(request: Request):
    """Liveness probe. Returns 503 while the process drains on SIGTERM."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(status_code=503, content={"status": "shutting_down", "service": SERVICE})
    return {"status": "healthy", "service": SERVICE}


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe: database reachable (postgres backend) and fallback directory present."""
    settings = get_settings()
    checks = {"database": True, "fallback": False}

    if settings.content_store_backend == "postgres":
        try:
            from app.db.base import ping

            await ping()
        except Exception as exc:
            checks["database"] = False
            logger.error("readiness_database_failed", error=str(exc), error_type=type(exc).__name__)

    checks["fallback"] = FileFallbackLoader(get_content_config()).base_dir.is_dir()

    all_healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
