"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from edumarket.config import get_settings
from edumarket.core.database import AsyncCassandraConnection
from edumarket.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe - ledger services need Cassandra; Redis is optional."""
    settings = get_settings()
    database_ready = AsyncCassandraConnection.is_connected() and bool(
        getattr(request.app.state, "enrollment_service", None)
    )
    if not database_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if database_ready else "degraded",
        "environment": settings.environment,
        "database": database_ready,
        "cache": get_redis() is not None,
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
