"""Quest template and per-user quest models."""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_forest.models.base import Base, TimestampMixin, UUIDMixin


class QuestType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CHALLENGE = "challenge"
    CHOICE = "choice"


class QuestCategory(str, Enum):
    LOGIN = "login"
    GAME = "game"
    SOCIAL = "social"
    ACHIEVEMENT = "achievement"
    POINTS = "points"
    SPRING = "spring"


class QuestStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class QuestTemplate(Base, UUIDMixin, TimestampMixin):
    """Definition of a quest that can be assigned to users."""

    __tablename__ = "quest_templates"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    difficulty: Mapped[str] = mapped_column(String(10), default="normal", nullable=False)

    # {"action_type": "game_complete", "count": 3}
    conditions: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    # {"points": 50, "bonus_multiplier": 1.0}
    rewards: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    duration_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    requires_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def target_value(self) -> int:
        return max(1, int(self.conditions.get("count", 1)))

    @property
    def reward_points(self) -> int:
        base = int(self.rewards.get("points", 0))
        multiplier = float(self.rewards.get("bonus_multiplier", 1.0))
        return int(base * multiplier)

    def __repr__(self) -> str:
        return f"<QuestTemplate {self.slug} {self.type}/{self.category}>"


class UserQuest(Base, UUIDMixin, TimestampMixin):
    """A quest assigned to a user for a given reward day."""

    __tablename__ = "user_quests"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quest_template_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("quest_templates.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(String(20), default=QuestStatus.ACTIVE.value, nullable=False)
    current_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)

    assigned_date: Mapped[date] = mapped_column(Date, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    rewards_claimed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template: Mapped["QuestTemplate"] = relationship("QuestTemplate", lazy="selectin")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "quest_template_id", "assigned_date",
            name="uq_user_quest_per_day",
        ),
        Index("ix_user_quests_user_status", "user_id", "status"),
    )

    @property
    def progress(self) -> float:
        if self.target_value <= 0:
            return 1.0
        return min(1.0, self.current_value / self.target_value)

    def __repr__(self) -> str:
        return f"<UserQuest {self.quest_template_id} {self.current_value}/{self.target_value}>"
