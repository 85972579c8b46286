"""Daily login bonus."""

import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.models.daily_bonus import DAILY_BONUS_REWARDS, DailyBonus
from points_forest.models.points import TransactionSource
from points_forest.models.quest import QuestCategory
from points_forest.models.user import User
from points_forest.services.experience import EXP_SOURCES, ExperienceService
from points_forest.services.points import PointsService
from points_forest.services.quests import QuestService
from points_forest.utils.day_window import local_date, next_day_start, utcnow
from points_forest.utils.errors import AlreadyClaimedTodayError, UserBannedError, UserNotFoundError

logger = logging.getLogger(__name__)

STREAK_MILESTONES = (
    (7, "streak_7"),
    (14, "streak_14"),
    (30, "streak_30"),
)


def calculate_reward(streak: int) -> tuple[int, str, list[dict[str, Any]]]:
    """Reward for claiming on day ``streak`` of a streak.

    Returns:
        ``(amount, reward_type, bonus_rewards)``
    """
    amount = DAILY_BONUS_REWARDS["daily"]
    reward_type = "daily"
    bonus_rewards: list[dict[str, Any]] = []

    for days, milestone in STREAK_MILESTONES:
        if streak == days:
            bonus = DAILY_BONUS_REWARDS[milestone]
            amount += bonus
            reward_type = milestone
            bonus_rewards.append({"type": f"{days}-day streak", "amount": bonus})

    return amount, reward_type, bonus_rewards


def next_milestone(streak: int) -> dict[str, int] | None:
    for days, milestone in STREAK_MILESTONES:
        if streak < days:
            return {"days_remaining": days - streak, "bonus": DAILY_BONUS_REWARDS[milestone]}
    return None


class DailyBonusService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _claim_for(self, user_id: str, day: date) -> DailyBonus | None:
        result = await self.session.execute(
            select(DailyBonus).where(
                DailyBonus.user_id == user_id,
                DailyBonus.bonus_date == day,
            )
        )
        return result.scalar_one_or_none()

    async def get_streak(self, user_id: str, now: datetime | None = None) -> int:
        """Current streak: today's claim if any, else the one from yesterday."""
        today = local_date(now or utcnow())
        result = await self.session.execute(
            select(DailyBonus.bonus_date, DailyBonus.streak_days)
            .where(
                DailyBonus.user_id == user_id,
                DailyBonus.bonus_date >= today - timedelta(days=1),
            )
            .order_by(DailyBonus.bonus_date.desc())
            .limit(1)
        )
        row = result.first()
        return row[1] if row else 0

    async def process_daily_bonus(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        """Claim today's bonus.

        Raises:
            AlreadyClaimedTodayError: If today's bonus was already claimed
        """
        now = now or utcnow()
        today = local_date(now)

        user = await self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        if user.is_banned:
            raise UserBannedError(user_id)

        if await self._claim_for(user_id, today):
            raise AlreadyClaimedTodayError(next_day_start(now))

        yesterday = await self._claim_for(user_id, today - timedelta(days=1))
        streak = yesterday.streak_days + 1 if yesterday else 1
        amount, reward_type, bonus_rewards = calculate_reward(streak)

        bonus = DailyBonus(
            user_id=user_id,
            bonus_date=today,
            streak_days=streak,
            reward_amount=amount,
            reward_type=reward_type,
            claimed_at=now,
        )
        self.session.add(bonus)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Concurrent claim won the unique (user_id, bonus_date) row
            raise AlreadyClaimedTodayError(next_day_start(now)) from e

        tx = await PointsService(self.session).grant_bonus(
            user_id,
            amount,
            TransactionSource.DAILY_BONUS,
            description=f"Daily bonus (day {streak})",
            metadata={"streak": streak, "reward_type": reward_type},
        )

        exp = await ExperienceService(self.session).grant_experience(
            user_id, EXP_SOURCES["daily_bonus"], "daily_bonus"
        )

        user.login_streak = streak
        user.last_daily_bonus_at = now

        await QuestService(self.session).update_quest_progress(
            user_id, QuestCategory.LOGIN.value, now=now
        )

        logger.info(f"Daily bonus: user={user_id[:8]}... streak={streak} amount={amount}")

        return {
            "success": True,
            "points_earned": amount,
            "streak": streak,
            "reward_type": reward_type,
            "bonus_rewards": bonus_rewards,
            "new_balance": tx.balance_after,
            "exp_gained": exp["exp_gained"],
            "level_ups": exp["level_ups"],
        }

    async def get_status(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        today = local_date(now)
        claimed_today = await self._claim_for(user_id, today) is not None
        streak = await self.get_streak(user_id, now)

        result = await self.session.execute(
            select(DailyBonus)
            .where(
                DailyBonus.user_id == user_id,
                DailyBonus.bonus_date >= today.replace(day=1),
            )
            .order_by(DailyBonus.bonus_date)
        )
        monthly = result.scalars().all()

        return {
            "can_claim": not claimed_today,
            "streak": streak,
            "next_claim_at": next_day_start(now).isoformat() if claimed_today else None,
            "monthly_claims": [
                {
                    "date": b.bonus_date.isoformat(),
                    "reward": b.reward_amount,
                    "reward_type": b.reward_type,
                }
                for b in monthly
            ],
            "next_bonus": next_milestone(streak),
            "daily_reward": DAILY_BONUS_REWARDS["daily"],
        }

    async def get_history(self, user_id: str, limit: int = 30) -> list[dict[str, Any]]:
        result = await self.session.execute(
            select(DailyBonus)
            .where(DailyBonus.user_id == user_id)
            .order_by(DailyBonus.bonus_date.desc())
            .limit(limit)
        )
        return [
            {
                "date": b.bonus_date.isoformat(),
                "streak": b.streak_days,
                "reward": b.reward_amount,
                "reward_type": b.reward_type,
                "claimed_at": b.claimed_at.isoformat(),
            }
            for b in result.scalars().all()
        ]
