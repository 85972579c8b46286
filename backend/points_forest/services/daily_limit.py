"""Per-day allowances for plays and pulls.

Two paths with different failure policies:

- ``count_today`` / ``remaining``: advisory, read from the persisted events
  and only used for display. A failing query reports zero used and
  ``degraded=True``.
- ``consume`` / ``release``: enforcement, an atomic Redis counter keyed by
  action, subject and local date. The counter is seeded from the persisted
  count the first time it is touched on a given day. When Redis is down the
  ``daily_limit_fail_open`` setting decides between rejecting and allowing.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.config import get_settings
from points_forest.middleware.prometheus import (
    record_daily_limit_rejection,
    record_daily_limit_store_error,
)
from points_forest.models.gacha import GachaPull
from points_forest.models.game import GameSession
from points_forest.models.spring import SpringVisit
from points_forest.utils.day_window import (
    day_start,
    local_date,
    next_day_start,
    seconds_until_reset,
    utcnow,
)
from points_forest.utils.errors import DailyLimitExceededError, LimitStoreUnavailableError
from points_forest.utils.redis_client import get_redis

logger = logging.getLogger(__name__)

Counter = Callable[[], Awaitable[int]]


@dataclass(frozen=True)
class DailyLimitStatus:
    used: int
    limit: int | None
    remaining: int | None
    next_reset: datetime
    degraded: bool = False

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "next_reset": self.next_reset.isoformat(),
            "degraded": self.degraded,
        }


class DailyLimitService:
    """Daily allowance counters."""

    KEY_PREFIX = "daily_limit"

    # KEYS[1] counter, ARGV: n, limit, ttl
    # Returns {1, used_after} on success, {0, used} when n would overflow
    CONSUME_SCRIPT = """
    local used = tonumber(redis.call("GET", KEYS[1]) or "0")
    local n = tonumber(ARGV[1])
    local limit = tonumber(ARGV[2])
    if used + n > limit then
        return {0, used}
    end
    used = redis.call("INCRBY", KEYS[1], n)
    redis.call("EXPIRE", KEYS[1], ARGV[3])
    return {1, used}
    """

    # Never drop below zero
    RELEASE_SCRIPT = """
    local used = tonumber(redis.call("GET", KEYS[1]) or "0")
    local n = math.min(tonumber(ARGV[1]), used)
    if n <= 0 then
        return used
    end
    return redis.call("DECRBY", KEYS[1], n)
    """

    def __init__(self, session: AsyncSession, fail_open: bool | None = None) -> None:
        self.session = session
        self._redis = get_redis()
        self.fail_open = get_settings().daily_limit_fail_open if fail_open is None else fail_open

    @classmethod
    def key(cls, action: str, subject: str, now: datetime) -> str:
        return f"{cls.KEY_PREFIX}:{action}:{subject}:{local_date(now).isoformat()}"

    # =========================================================================
    # Persisted counts
    # =========================================================================

    def game_sessions_counter(self, user_id: str, game_id: str, now: datetime) -> Counter:
        async def _count() -> int:
            result = await self.session.execute(
                select(func.count(GameSession.id)).where(
                    GameSession.user_id == user_id,
                    GameSession.game_id == game_id,
                    GameSession.created_at >= day_start(now),
                    GameSession.created_at < next_day_start(now),
                )
            )
            return int(result.scalar_one() or 0)

        return _count

    def gacha_pulls_counter(self, user_id: str, machine_id: str, now: datetime) -> Counter:
        """Individual pulls today; a 10x pull counts as ten."""

        async def _count() -> int:
            result = await self.session.execute(
                select(func.coalesce(func.sum(GachaPull.pull_count), 0)).where(
                    GachaPull.user_id == user_id,
                    GachaPull.gacha_machine_id == machine_id,
                    GachaPull.created_at >= day_start(now),
                    GachaPull.created_at < next_day_start(now),
                )
            )
            return int(result.scalar_one() or 0)

        return _count

    def spring_visits_counter(self, user_id: str, spring_id: str, now: datetime) -> Counter:
        async def _count() -> int:
            result = await self.session.execute(
                select(func.count(SpringVisit.id)).where(
                    SpringVisit.user_id == user_id,
                    SpringVisit.spring_id == spring_id,
                    SpringVisit.visit_date == local_date(now),
                )
            )
            return int(result.scalar_one() or 0)

        return _count

    # =========================================================================
    # Advisory path
    # =========================================================================

    async def count_today(self, counter: Counter) -> tuple[int, bool]:
        """Used count for display.

        Returns:
            ``(used, degraded)``
        """
        try:
            return await counter(), False
        except SQLAlchemyError as e:
            logger.warning(f"Daily count query failed, reporting 0 used: {e}")
            return 0, True

    async def remaining(
        self,
        limit: int | None,
        counter: Counter,
        now: datetime | None = None,
    ) -> DailyLimitStatus:
        now = now or utcnow()
        used, degraded = await self.count_today(counter)
        remaining = None if limit is None else max(0, limit - used)
        return DailyLimitStatus(
            used=used,
            limit=limit,
            remaining=remaining,
            next_reset=next_day_start(now),
            degraded=degraded,
        )

    # =========================================================================
    # Enforcement path
    # =========================================================================

    async def consume(
        self,
        action: str,
        subject: str,
        limit: int,
        counter: Counter,
        n: int = 1,
        now: datetime | None = None,
    ) -> int:
        """Reserve ``n`` uses of today's allowance.

        Args:
            action: What is limited, e.g. ``game:<id>`` or ``gacha:<id>``
            subject: Who is limited (user id)
            limit: Allowed uses per reward day
            counter: Persisted count used to seed the Redis counter
            n: Uses to reserve

        Returns:
            Used count after the reservation

        Raises:
            DailyLimitExceededError: If ``used + n`` would exceed ``limit``
            LimitStoreUnavailableError: If Redis is down and the policy is
                fail-closed
        """
        now = now or utcnow()
        key = self.key(action, subject, now)
        ttl = seconds_until_reset(now)

        try:
            if self._redis is None:
                raise RedisError("Redis client not initialized")

            if not await self._redis.exists(key):
                seed = await counter()
                await self._redis.set(key, seed, nx=True, ex=ttl)

            script = self._redis.register_script(self.CONSUME_SCRIPT)
            allowed, used = await script(keys=[key], args=[n, limit, ttl])
        except (RedisError, OSError) as e:
            record_daily_limit_store_error(action, self.fail_open)
            if self.fail_open:
                logger.warning(f"Limit store unavailable, allowing {action} for {subject}: {e}")
                return 0
            logger.error(f"Limit store unavailable, rejecting {action} for {subject}: {e}")
            raise LimitStoreUnavailableError(action) from e

        if not int(allowed):
            record_daily_limit_rejection(action)
            raise DailyLimitExceededError(
                action=action,
                limit=limit,
                used=int(used),
                next_reset=next_day_start(now),
            )

        return int(used)

    async def release(
        self,
        action: str,
        subject: str,
        n: int = 1,
        now: datetime | None = None,
    ) -> None:
        """Give back a reservation whose transaction did not commit."""
        if self._redis is None:
            return

        key = self.key(action, subject, now or utcnow())
        try:
            script = self._redis.register_script(self.RELEASE_SCRIPT)
            await script(keys=[key], args=[n])
        except (RedisError, OSError) as e:
            # The counter expires at midnight; worst case the user loses n uses today
            logger.error(f"Failed to release {n} of {action} for {subject}: {e}")
