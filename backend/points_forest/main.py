"""FastAPI application entry point.

Points Forest reward API: games, gacha, daily bonus, quests and the points
ledger behind them.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from points_forest import __version__
from points_forest.api import (
    admin,
    daily_bonus,
    gacha,
    games,
    health,
    leaderboard,
    points,
    quests,
    springs,
    users,
)
from points_forest.api.handlers import register_exception_handlers
from points_forest.config import get_settings
from points_forest.logging_config import bind_context, clear_context, configure_logging, get_logger
from points_forest.middleware.prometheus import setup_prometheus
from points_forest.middleware.rate_limit import RateLimitMiddleware
from points_forest.middleware.sentry import init_sentry
from points_forest.utils.db import close_db, init_db
from points_forest.utils.json_utils import ORJSONResponse
from points_forest.utils.redis_client import close_redis, get_redis, init_redis

API_V1_PREFIX = "/api/v1"

settings = get_settings()
is_production = settings.app_env == "production"

configure_logging(log_level=settings.log_level, json_logs=is_production, app_env=settings.app_env)
logger = get_logger(__name__)

# Tracing and profiling only sample in production
if init_sentry(
    dsn=settings.sentry_dsn,
    environment=settings.app_env,
    traces_sample_rate=settings.sentry_traces_sample_rate if is_production else 0.0,
    profiles_sample_rate=settings.sentry_profiles_sample_rate if is_production else 0.0,
    release=__version__,
):
    logger.info("sentry_initialized")
elif is_production:
    logger.warning("Sentry DSN not configured - error tracking disabled")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await init_db()
    await init_redis()
    logger.info(
        "startup_complete",
        version=__version__,
        reward_timezone=settings.reward_timezone,
        daily_limit_fail_open=settings.daily_limit_fail_open,
        slot_daily_limit=settings.slot_daily_limit,
    )

    yield

    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="Points Forest API",
    version=__version__,
    description="Gamified rewards: mini-games, gacha, daily bonus and quests",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

setup_prometheus(app, app_version=__version__)
register_exception_handlers(app)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate ``X-Request-ID`` and log one access line per request.

    The id is bound into the log context and echoed as ``traceId`` in
    failure payloads.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        clear_context()
        bind_context(request_id=request_id)
        started = time.perf_counter()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response


# Last added runs first: request id, then CORS, then the rate limiter
app.add_middleware(RateLimitMiddleware, redis_getter=get_redis)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIDMiddleware)

app.include_router(health.router)
for module in (points, games, gacha, daily_bonus, quests, springs, leaderboard, users, admin):
    app.include_router(module.router, prefix=API_V1_PREFIX)


@app.get("/", tags=["Root"], summary="API root endpoint")
async def root() -> dict[str, str]:
    return {
        "name": "Points Forest API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "points_forest.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        workers=None if settings.app_debug else settings.uvicorn_workers,
        log_level=settings.log_level.lower(),
    )
