"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from lawcomments.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe - ready once the moderation service is wired up.

    Redis is reported but optional: without it caching and revalidation
    notifications are skipped.
    """
    settings = get_settings()
    state = request.app.state
    storage_ready = bool(getattr(state, "moderation_service", None))
    if not storage_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if storage_ready else "unavailable",
        "environment": settings.environment,
        "debug": settings.debug,
        "storage": storage_ready,
        "cache": bool(getattr(state, "redis", None)),
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
