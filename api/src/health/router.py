"""Health check endpoints."""

from fastapi import APIRouter

from src.config import get_settings
from src.core.database import AsyncCassandraConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> dict[str, str | bool]:
    """Readiness probe - reports the backing stores the academy needs."""
    settings = get_settings()
    cassandra_ready = AsyncCassandraConnection.is_connected()
    redis_ready = get_redis() is not None
    return {
        "status": "ready" if cassandra_ready and redis_ready else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "cassandra": cassandra_ready,
        "redis": redis_ready,
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
