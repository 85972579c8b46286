"""Daily login bonus model."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from points_forest.models.base import Base


class DailyBonus(Base):
    """One claimed daily bonus."""

    __tablename__ = "daily_bonuses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Reward calendar day (reward timezone)
    bonus_date: Mapped[date] = mapped_column(Date, nullable=False)

    streak_days: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    reward_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # daily, streak_7, streak_14, streak_30
    reward_type: Mapped[str] = mapped_column(String(20), default="daily", nullable=False)

    claimed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # One claim per user per day
        UniqueConstraint("user_id", "bonus_date", name="uq_user_bonus_date"),
        Index("ix_daily_bonus_user_date", "user_id", "bonus_date"),
    )

    def __repr__(self) -> str:
        return f"<DailyBonus user={self.user_id} date={self.bonus_date}>"


DAILY_BONUS_REWARDS = {
    "daily": 50,
    "streak_7": 200,
    "streak_14": 500,
    "streak_30": 1500,
}
