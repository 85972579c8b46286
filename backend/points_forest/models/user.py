"""User profile model.

Accounts live with the hosted auth provider; this row holds the reward state
(points, level, streak) keyed by the provider's user id.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from points_forest.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """Reward profile for an authenticated user."""

    __tablename__ = "users"

    email: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Balance - only PointsService writes this column
    points: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Current points balance (never negative)",
    )

    # Rank
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    experience: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Daily bonus
    login_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_daily_bonus_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Flags
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 0", name="points_non_negative"),
        CheckConstraint("level >= 1", name="level_positive"),
        CheckConstraint("experience >= 0", name="experience_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User {self.username} points={self.points}>"
