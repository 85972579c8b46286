"""Experience and rank.

Level curve: ``level = floor(sqrt(exp / 100)) + 1``, so reaching level
``L + 1`` takes ``L**2 * 100`` experience in total.
"""

import logging
import math
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.config import get_settings
from points_forest.models.user import User
from points_forest.utils.cache import CacheKeys, reward_cache
from points_forest.utils.errors import InvalidAmountError, UserNotFoundError

logger = logging.getLogger(__name__)

# Flat experience grants per source
EXP_SOURCES = {
    "daily_bonus": 25,
}


def level_for_experience(exp: int) -> int:
    return math.isqrt(max(0, exp) // 100) + 1


def experience_for_level(level: int) -> int:
    """Total experience at which ``level`` is reached."""
    return (max(1, level) - 1) ** 2 * 100


def game_experience(points_earned: int, ratio: float | None = None) -> int:
    """Experience granted for a game play."""
    ratio = get_settings().game_exp_ratio if ratio is None else ratio
    return max(0, math.floor(points_earned * ratio))


def rank_info(exp: int) -> dict[str, Any]:
    level = level_for_experience(exp)
    current_floor = experience_for_level(level)
    next_level_exp = level**2 * 100
    span = next_level_exp - current_floor
    return {
        "level": level,
        "experience": exp,
        "current_level_exp": current_floor,
        "next_level_exp": next_level_exp,
        "exp_to_next_level": next_level_exp - exp,
        "progress": round((exp - current_floor) / span, 4) if span else 1.0,
    }


class ExperienceService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def grant_experience(self, user_id: str, amount: int, source: str) -> dict[str, Any]:
        """Add experience and recompute the level.

        Returns:
            ``{exp_gained, current_level, current_exp, level_ups}``
        """
        if amount < 0:
            raise InvalidAmountError("Experience cannot be negative")

        user = await self.session.get(User, user_id, with_for_update=True, populate_existing=True)
        if not user:
            raise UserNotFoundError(user_id)

        if amount == 0:
            return {
                "exp_gained": 0,
                "current_level": user.level,
                "current_exp": user.experience,
                "level_ups": 0,
            }

        old_level = user.level
        user.experience += amount
        user.level = max(old_level, level_for_experience(user.experience))
        await self.session.flush()

        reward_cache.clear_user(user_id)
        level_ups = user.level - old_level
        if level_ups:
            logger.info(f"Level up: user={user_id[:8]}... {old_level} -> {user.level} ({source})")

        return {
            "exp_gained": amount,
            "current_level": user.level,
            "current_exp": user.experience,
            "level_ups": level_ups,
        }

    async def get_rank_info(self, user_id: str) -> dict[str, Any]:
        async def load() -> dict[str, Any]:
            user = await self.session.get(User, user_id)
            if not user:
                raise UserNotFoundError(user_id)
            return rank_info(user.experience)

        return await reward_cache.get_or_load(CacheKeys.profile(user_id), load, CacheKeys.PROFILE_TTL)
