"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text

from insights_service import __version__
from insights_service.config import Settings, get_settings
from insights_service.infrastructure.database.connection import get_db_session

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    timestamp: str
    dependencies: dict[str, Any]


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns the service status and version information.
    This endpoint is used by load balancers and orchestrators
    to determine if the service is running.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies={
            "postgres": "configured",
            "redis": "configured",
            "admin_auth": "configured" if settings.admin_api_key else "disabled",
        },
    )


async def _check_postgres() -> bool:
    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Postgres readiness check failed", error=str(e))
        return False


async def _check_redis(settings: Settings) -> bool:
    client = aioredis.from_url(settings.redis_url, socket_connect_timeout=2, socket_timeout=2)
    try:
        await client.ping()
        return True
    except Exception as e:
        logger.warning("Redis readiness check failed", error=str(e))
        return False
    finally:
        await client.aclose()


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(settings: Settings = Depends(get_settings)) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Verifies that the log database and the digest broker are reachable.
    """
    checks = {
        "postgres": await _check_postgres(),
        "redis": await _check_redis(settings),
    }
    return ReadinessResponse(ready=all(checks.values()), checks=checks)


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Simple endpoint that returns 200 if the service is running."""
    return {"status": "alive"}
