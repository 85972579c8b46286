"""Health and readiness probes."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from points_forest import __version__
from points_forest.config import get_settings
from points_forest.logging_config import get_logger
from points_forest.utils.db import engine
from points_forest.utils.json_utils import ORJSONResponse
from points_forest.utils.redis_client import get_redis

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


async def check_database() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("database_health_check_failed", error=str(e))
        return f"unhealthy: {e}"
    return "healthy"


async def check_redis() -> str:
    client = get_redis()
    if client is None:
        return "not initialized"
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("redis_health_check_failed", error=str(e))
        return f"unhealthy: {e}"
    return "healthy"


@router.get("", summary="Health check endpoint", response_model=dict)
async def health_check() -> dict[str, Any]:
    """Database and Redis connectivity plus the active reward policies.

    Redis being down degrades the service: daily limits either reject plays
    or run unenforced depending on ``daily_limit_fail_open``.
    """
    settings = get_settings()
    services = {
        "database": await check_database(),
        "redis": await check_redis(),
    }
    return {
        "status": "healthy" if all(v == "healthy" for v in services.values()) else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "services": services,
        "reward_timezone": settings.reward_timezone,
        "daily_limit_fail_open": settings.daily_limit_fail_open,
    }


@router.get("/live", summary="Liveness probe")
async def liveness_probe() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready", summary="Readiness probe")
async def readiness_probe():
    database = await check_database()
    redis = await check_redis()
    if database == "healthy" and redis == "healthy":
        return {"status": "ready"}
    return ORJSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not ready", "database": database, "redis": redis},
    )
