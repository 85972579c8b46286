"""Lucky springs.

Each spring can be visited ``daily_visits`` times per reward day. A visit
draws a blessing tier, credits its points to the ledger and advances spring
quests. Level and premium gates are checked before the allowance is touched.
"""

import logging
import random
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.config import get_settings
from points_forest.engine import springs
from points_forest.middleware.prometheus import record_spring_visit
from points_forest.models.points import TransactionSource
from points_forest.models.quest import QuestCategory
from points_forest.models.spring import LuckySpring, SpringVisit
from points_forest.models.user import User
from points_forest.services.daily_limit import DailyLimitService
from points_forest.services.points import PointsService
from points_forest.services.quests import QuestService
from points_forest.utils.day_window import local_date, next_day_start, utcnow
from points_forest.utils.errors import (
    LevelRequiredError,
    PremiumRequiredError,
    SpringNotFoundError,
    UserBannedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def spring_status(spring: LuckySpring, user: User, visits_today: int) -> dict[str, Any]:
    """What the player sees for one spring today."""
    accessible = user.level >= spring.level_requirement and (user.is_premium or not spring.premium_only)
    remaining = max(0, spring.daily_visits - visits_today)
    return {
        "id": spring.id,
        "name": spring.name,
        "slug": spring.slug,
        "description": spring.description,
        "theme": spring.theme,
        "level_requirement": spring.level_requirement,
        "premium_only": spring.premium_only,
        "daily_visits": spring.daily_visits,
        "visits_today": visits_today,
        "visits_remaining": remaining,
        "accessible": accessible,
        "can_visit_today": accessible and remaining > 0,
        "color_scheme": spring.color_scheme or {},
    }


def summarize_spring_visits(visits: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Totals shown above the visit history."""
    visits = list(visits)
    total = sum(int(v["points_earned"]) for v in visits)
    best = max(visits, key=lambda v: v["points_earned"], default=None)
    tiers = Counter(v["reward_tier"] for v in visits)
    return {
        "total_visits": len(visits),
        "total_points": total,
        "average_points": round(total / len(visits)) if visits else 0,
        "best_points": int(best["points_earned"]) if best else 0,
        "best_tier": best["reward_tier"] if best else None,
        "tier_distribution": {tier: tiers[tier] for tier in springs.TIER_ORDER if tiers[tier]},
    }


class SpringService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None) -> None:
        self.session = session
        self._rng = rng or random.SystemRandom()
        self._limits = DailyLimitService(session)

    async def get_spring(self, slug: str) -> LuckySpring:
        result = await self.session.execute(
            select(LuckySpring).where(LuckySpring.slug == slug, LuckySpring.is_active.is_(True))
        )
        spring = result.scalar_one_or_none()
        if not spring:
            raise SpringNotFoundError(slug)
        return spring

    async def list_springs(self, user: User, now: datetime | None = None) -> list[dict[str, Any]]:
        """Active springs with today's visit counts for ``user``."""
        now = now or utcnow()
        spring_rows = await self.session.execute(
            select(LuckySpring)
            .where(LuckySpring.is_active.is_(True))
            .order_by(LuckySpring.sort_order, LuckySpring.name)
        )
        count_rows = await self.session.execute(
            select(SpringVisit.spring_id, func.count(SpringVisit.id))
            .where(SpringVisit.user_id == user.id, SpringVisit.visit_date == local_date(now))
            .group_by(SpringVisit.spring_id)
        )
        visits = {spring_id: int(count) for spring_id, count in count_rows.all()}
        return [spring_status(s, user, visits.get(s.id, 0)) for s in spring_rows.scalars().all()]

    async def visit_spring(self, user_id: str, slug: str, now: datetime | None = None) -> dict[str, Any]:
        """Visit a spring and collect its blessing.

        Raises:
            SpringNotFoundError: Unknown or inactive spring
            UserBannedError / PremiumRequiredError / LevelRequiredError
            DailyLimitExceededError / LimitStoreUnavailableError
        """
        now = now or utcnow()
        spring = await self.get_spring(slug)

        user = await self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        if user.is_banned:
            raise UserBannedError(user_id)
        if spring.premium_only and not user.is_premium:
            raise PremiumRequiredError(f"spring:{spring.slug}")
        if user.level < spring.level_requirement:
            raise LevelRequiredError(f"spring:{spring.slug}", spring.level_requirement, user.level)

        action = f"spring:{spring.id}"
        counter = self._limits.spring_visits_counter(user_id, spring.id, now)
        visits_today = await self._limits.consume(action, user_id, spring.daily_visits, counter, now=now)

        try:
            blessing = springs.draw_blessing(
                springs.tiers_from_config(spring.reward_tiers),
                self._rng,
                get_settings().spring_point_multiplier,
            )
            visit_id = str(uuid4())
            self.session.add(
                SpringVisit(
                    id=visit_id,
                    user_id=user_id,
                    spring_id=spring.id,
                    points_earned=blessing.points_earned,
                    reward_tier=blessing.tier,
                    visit_date=local_date(now),
                    created_at=now,
                )
            )
            await self.session.flush()

            balance = user.points
            if blessing.points_earned > 0:
                tx = await PointsService(self.session).earn(
                    user_id,
                    blessing.points_earned,
                    TransactionSource.SPRING,
                    description=f"{spring.name}: {blessing.tier} blessing",
                    reference_id=visit_id,
                    metadata={"spring": spring.slug, "tier": blessing.tier},
                )
                balance = tx.balance_after

            quests = await QuestService(self.session).update_quest_progress(
                user_id, QuestCategory.SPRING.value, action_type="spring_visit", now=now
            )
            await self.session.commit()

        except Exception:
            await self._limits.release(action, user_id, now=now)
            raise

        if visits_today == 0:
            visits_today, _ = await self._limits.count_today(counter)

        record_spring_visit(spring.slug, blessing.tier)
        logger.info(
            f"Spring visit: user={user_id[:8]}... spring={spring.slug} "
            f"tier={blessing.tier} points={blessing.points_earned}"
        )

        return {
            "success": True,
            "visit_id": visit_id,
            "spring_name": spring.name,
            "tier": blessing.tier,
            "points_earned": blessing.points_earned,
            "message": blessing.message,
            "balance": balance,
            "visits_today": visits_today,
            "visits_remaining": max(0, spring.daily_visits - visits_today),
            "next_reset": next_day_start(now).isoformat(),
            "quests_completed": quests["quests_completed"],
        }

    async def get_history(self, user_id: str, limit: int = HISTORY_LIMIT) -> dict[str, Any]:
        """Latest visits, newest first, with totals over the same window."""
        result = await self.session.execute(
            select(
                SpringVisit.id,
                LuckySpring.name.label("spring_name"),
                SpringVisit.points_earned,
                SpringVisit.reward_tier,
                SpringVisit.visit_date,
                SpringVisit.created_at,
            )
            .join(LuckySpring, LuckySpring.id == SpringVisit.spring_id)
            .where(SpringVisit.user_id == user_id)
            .order_by(SpringVisit.created_at.desc())
            .limit(limit)
        )
        visits = [dict(row._mapping) for row in result.all()]
        return {"visits": visits, "summary": summarize_spring_visits(visits)}
