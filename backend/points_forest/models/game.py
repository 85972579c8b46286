"""Mini-game catalogue and play session models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_forest.models.base import Base, TimestampMixin, UUIDMixin


class GameType(str, Enum):
    NUMBER_GUESS = "number_guess"
    ROULETTE = "roulette"
    SLOT_MACHINE = "slot_machine"
    MEMORY = "memory"
    TRIVIA = "trivia"


class Game(Base, UUIDMixin, TimestampMixin):
    """Configurable mini-game.

    ``config`` carries game-specific tuning, e.g. ``{"segments": [...]}`` for
    roulette wheels.
    """

    __tablename__ = "games"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    config: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    daily_limit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Plays per user per reward day (NULL = unlimited)",
    )
    min_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_points: Mapped[int] = mapped_column(Integer, default=1000, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    requires_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Game {self.slug} type={self.type}>"


class GameSession(Base, UUIDMixin):
    """One completed play of a game."""

    __tablename__ = "game_sessions"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    game_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    game_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    game: Mapped["Game"] = relationship("Game", lazy="selectin")

    __table_args__ = (
        Index("ix_game_sessions_user_game_created", "user_id", "game_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<GameSession game={self.game_id} points={self.points_earned}>"
