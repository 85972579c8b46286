"""Per-client request throttling.

A fixed-window counter in Redis guards against rapid repeat clicks. It is
advisory only: daily limits and balances are enforced atomically by the
services, so when Redis is unavailable requests are served unthrottled.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from points_forest.utils.json_utils import ORJSONResponse

logger = logging.getLogger(__name__)

UNTHROTTLED_PREFIXES = ("/health", "/metrics", "/docs", "/redoc", "/openapi.json")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis fixed-window rate limiter.

    ``RATE_LIMITS`` maps a path prefix to ``(max_requests, window_seconds)``;
    the longest matching prefix wins.
    """

    RATE_LIMITS: dict[str, tuple[int, int]] = {
        "/api/v1/gacha/": (20, 60),
        "/api/v1/games/": (30, 60),
        "/api/v1/daily-bonus": (10, 60),
        "/api/v1/quests/": (30, 60),
        "/api/v1/springs/": (10, 60),
        "/api/v1/points/transactions": (20, 60),
        "/api/v1/admin/points/adjust": (10, 60),
    }

    DEFAULT_LIMIT: tuple[int, int] = (100, 60)

    def __init__(self, app: Callable, redis_getter: Callable[[], Redis | None] | None = None):
        super().__init__(app)
        self._redis_getter = redis_getter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        redis = self._redis_getter() if self._redis_getter else None
        path = request.url.path
        if redis is None or path.startswith(UNTHROTTLED_PREFIXES):
            return await call_next(request)

        client_ip = self.client_ip(request)
        limit, window = self.limit_for_path(path)
        key = f"ratelimit:{client_ip}:{request.method}:{path}"

        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, window, nx=True)
                current, _ = await pipe.execute()
        except RedisError as e:
            logger.error(f"Rate limit check failed: {e}")
            return await call_next(request)

        if current > limit:
            logger.warning(f"Rate limit exceeded: {client_ip} on {path} ({current}/{limit} in {window}s)")
            return ORJSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "Too many requests. Please try again later.",
                    "code": "RATE_LIMIT_EXCEEDED",
                    "details": {"limit": limit, "window": window, "retry_after": window},
                    "traceId": getattr(request.state, "request_id", None),
                },
                headers={"Retry-After": str(window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current))
        return response

    @staticmethod
    def client_ip(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def limit_for_path(self, path: str) -> tuple[int, int]:
        matches = [prefix for prefix in self.RATE_LIMITS if path.startswith(prefix)]
        if not matches:
            return self.DEFAULT_LIMIT
        return self.RATE_LIMITS[max(matches, key=len)]
