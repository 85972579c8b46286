"""Quest assignment, progress and reward claims."""

import logging
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.models.points import TransactionSource
from points_forest.models.quest import QuestStatus, QuestTemplate, QuestType, UserQuest
from points_forest.models.user import User
from points_forest.services.points import PointsService
from points_forest.utils.day_window import local_date, next_day_start, utcnow
from points_forest.utils.errors import (
    QuestNotCompletedError,
    QuestNotFoundError,
    RewardAlreadyClaimedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


class QuestService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def assign_daily_quests(self, user_id: str, now: datetime | None = None) -> dict[str, int]:
        """Give the user today's daily quests. Safe to call repeatedly.

        Returns:
            ``{new_quests_generated, total_active_quests}``
        """
        now = now or utcnow()
        today = local_date(now)

        user = await self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)

        query = (
            select(QuestTemplate)
            .where(
                QuestTemplate.is_active.is_(True),
                QuestTemplate.type == QuestType.DAILY.value,
            )
            .order_by(QuestTemplate.sort_order)
        )
        if not user.is_premium:
            query = query.where(QuestTemplate.requires_premium.is_(False))
        templates = list((await self.session.execute(query)).scalars().all())

        existing = await self.session.execute(
            select(UserQuest.quest_template_id).where(
                UserQuest.user_id == user_id,
                UserQuest.assigned_date == today,
            )
        )
        assigned_ids = set(existing.scalars().all())

        created = 0
        for template in templates:
            if template.id in assigned_ids:
                continue
            self.session.add(
                UserQuest(
                    id=str(uuid4()),
                    user_id=user_id,
                    quest_template_id=template.id,
                    status=QuestStatus.ACTIVE.value,
                    current_value=0,
                    target_value=template.target_value,
                    assigned_date=today,
                    expires_at=next_day_start(now),
                )
            )
            created += 1

        if created:
            await self.session.flush()
            logger.info(f"Assigned {created} daily quests to user={user_id[:8]}...")

        return {
            "new_quests_generated": created,
            "total_active_quests": len(assigned_ids) + created,
        }

    async def get_user_quests(self, user_id: str, now: datetime | None = None) -> list[UserQuest]:
        """Today's daily quests plus any active non-daily quests."""
        now = now or utcnow()
        await self.assign_daily_quests(user_id, now)

        result = await self.session.execute(
            select(UserQuest)
            .join(QuestTemplate, QuestTemplate.id == UserQuest.quest_template_id)
            .where(
                UserQuest.user_id == user_id,
                or_(
                    and_(
                        QuestTemplate.type == QuestType.DAILY.value,
                        UserQuest.assigned_date == local_date(now),
                    ),
                    and_(
                        QuestTemplate.type != QuestType.DAILY.value,
                        UserQuest.status == QuestStatus.ACTIVE.value,
                    ),
                ),
            )
            .order_by(QuestTemplate.sort_order)
        )
        return list(result.scalars().all())

    async def update_quest_progress(
        self,
        user_id: str,
        category: str,
        increment: int = 1,
        quest_type: str | None = None,
        action_type: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, int]:
        """Advance active quests of ``category``.

        Returns:
            ``{quests_completed, total_points_earned}`` where the points are
            the claimable rewards of quests completed by this call
        """
        if increment <= 0:
            return {"quests_completed": 0, "total_points_earned": 0}

        now = now or utcnow()
        query = (
            select(UserQuest)
            .join(QuestTemplate, QuestTemplate.id == UserQuest.quest_template_id)
            .where(
                UserQuest.user_id == user_id,
                UserQuest.status == QuestStatus.ACTIVE.value,
                QuestTemplate.category == category,
                or_(UserQuest.expires_at.is_(None), UserQuest.expires_at > now),
            )
            .with_for_update(of=UserQuest)
        )
        if quest_type:
            query = query.where(QuestTemplate.type == quest_type)

        quests = list((await self.session.execute(query)).scalars().all())

        completed = 0
        points = 0
        for quest in quests:
            wanted = quest.template.conditions.get("action_type")
            if action_type and wanted and wanted != action_type:
                continue

            quest.current_value = min(quest.target_value, quest.current_value + increment)
            if quest.current_value >= quest.target_value:
                quest.status = QuestStatus.COMPLETED.value
                quest.completed_at = now
                quest.points_earned = quest.template.reward_points
                completed += 1
                points += quest.points_earned

        if quests:
            await self.session.flush()

        return {"quests_completed": completed, "total_points_earned": points}

    async def claim_quest_reward(self, user_id: str, quest_id: str) -> dict[str, Any]:
        """Pay out a completed quest exactly once.

        Raises:
            QuestNotFoundError / QuestNotCompletedError / RewardAlreadyClaimedError
        """
        result = await self.session.execute(
            update(UserQuest)
            .where(
                UserQuest.id == quest_id,
                UserQuest.user_id == user_id,
                UserQuest.status == QuestStatus.COMPLETED.value,
                UserQuest.rewards_claimed.is_(False),
            )
            .values(rewards_claimed=True)
            .returning(UserQuest.points_earned, UserQuest.quest_template_id)
        )
        row = result.first()

        if row is None:
            quest = await self.session.get(UserQuest, quest_id)
            if not quest or quest.user_id != user_id:
                raise QuestNotFoundError(quest_id)
            if quest.rewards_claimed:
                raise RewardAlreadyClaimedError(quest_id)
            raise QuestNotCompletedError(quest_id)

        points_earned, template_id = row
        template = await self.session.get(QuestTemplate, template_id)
        quest_name = template.name if template else ""

        if points_earned > 0:
            await PointsService(self.session).earn(
                user_id,
                points_earned,
                TransactionSource.QUEST,
                description=f"Quest reward: {quest_name}",
                reference_id=quest_id,
            )

        logger.info(f"Quest reward claimed: user={user_id[:8]}... quest={quest_id} points={points_earned}")

        return {
            "success": True,
            "points_earned": points_earned,
            "quest_name": quest_name,
        }
