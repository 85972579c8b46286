"""Lucky spring models."""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_forest.models.base import Base, TimestampMixin, UUIDMixin


class LuckySpring(Base, UUIDMixin, TimestampMixin):
    """A spring that grants a random blessing a few times per reward day.

    ``reward_tiers`` overrides the default tier table, e.g.
    ``[{"tier": "rare", "probability": 0.25, "min_points": 30, "max_points": 60}]``.
    """

    __tablename__ = "lucky_springs"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # water, forest, mystic, rainbow
    theme: Mapped[str] = mapped_column(String(20), default="water", nullable=False)

    level_requirement: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    premium_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    daily_visits: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Visits per user per reward day",
    )

    reward_tiers: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    color_scheme: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<LuckySpring {self.slug} theme={self.theme}>"


class SpringVisit(Base, UUIDMixin):
    """One visit to a spring and the blessing it paid."""

    __tablename__ = "spring_visits"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    spring_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("lucky_springs.id", ondelete="CASCADE"),
        nullable=False,
    )

    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reward_tier: Mapped[str] = mapped_column(String(20), nullable=False)

    # Reward calendar day (reward timezone)
    visit_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    spring: Mapped["LuckySpring"] = relationship("LuckySpring", lazy="selectin")

    __table_args__ = (
        Index("ix_spring_visits_user_spring_created", "user_id", "spring_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SpringVisit spring={self.spring_id} tier={self.reward_tier}>"
