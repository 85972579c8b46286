"""Gacha machine, item, pool, pull and inventory models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_forest.models.base import Base, TimestampMixin, UUIDMixin


class GachaType(str, Enum):
    STANDARD = "standard"
    PREMIUM = "premium"
    EVENT = "event"
    DAILY = "daily"


class CostType(str, Enum):
    POINTS = "points"
    PREMIUM_CURRENCY = "premium_currency"
    SPECIAL_KEY = "special_key"


class ItemCategory(str, Enum):
    POINTS = "points"
    AVATAR_FRAME = "avatar_frame"
    BADGE = "badge"
    BOOST = "boost"
    SPECIAL = "special"


class ItemRarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHICAL = "mythical"


class GachaMachine(Base, UUIDMixin, TimestampMixin):
    """A gacha banner users can pull from."""

    __tablename__ = "gacha_machines"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=GachaType.STANDARD.value, nullable=False)

    cost_type: Mapped[str] = mapped_column(String(30), default=CostType.POINTS.value, nullable=False)
    cost_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    pull_rates: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment='{"rates": {rarity: probability}}',
    )

    daily_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    requires_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_limited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    available_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    available_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    pools: Mapped[list["GachaPool"]] = relationship(
        "GachaPool",
        back_populates="machine",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("cost_amount >= 0", name="cost_non_negative"),
    )

    def is_available(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.available_from and now < self.available_from:
            return False
        if self.available_until and now >= self.available_until:
            return False
        return True

    def __repr__(self) -> str:
        return f"<GachaMachine {self.slug} cost={self.cost_amount}>"


class GachaItem(Base, UUIDMixin, TimestampMixin):
    """Collectible that can drop from a machine."""

    __tablename__ = "gacha_items"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    rarity: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    point_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    icon_emoji: Mapped[str | None] = mapped_column(String(16), nullable=True)
    rarity_color: Mapped[str] = mapped_column(String(16), default="#94a3b8", nullable=False)

    is_tradeable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_consumable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    max_stack: Mapped[int] = mapped_column(Integer, default=99, nullable=False)

    def __repr__(self) -> str:
        return f"<GachaItem {self.slug} {self.rarity}>"


class GachaPool(Base, UUIDMixin):
    """Membership of an item in a machine's drop table."""

    __tablename__ = "gacha_pools"

    gacha_machine_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("gacha_machines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gacha_item_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("gacha_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    drop_rate: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Absolute probability across the whole pool",
    )
    weight: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Relative weight among items of the same rarity",
    )
    is_jackpot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    machine: Mapped["GachaMachine"] = relationship("GachaMachine", back_populates="pools")
    item: Mapped["GachaItem"] = relationship("GachaItem", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("gacha_machine_id", "gacha_item_id", name="uq_gacha_pool_machine_item"),
        CheckConstraint("drop_rate >= 0", name="drop_rate_non_negative"),
    )


class GachaPull(Base, UUIDMixin):
    """One paid pull (1x or 10x) and everything it produced."""

    __tablename__ = "gacha_pulls"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gacha_machine_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("gacha_machines.id", ondelete="RESTRICT"),
        nullable=False,
    )

    cost_paid: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency_type: Mapped[str] = mapped_column(String(30), default=CostType.POINTS.value, nullable=False)
    items_received: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    total_value: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    pull_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    machine: Mapped["GachaMachine"] = relationship("GachaMachine", lazy="selectin")

    __table_args__ = (
        Index("ix_gacha_pulls_user_machine_created", "user_id", "gacha_machine_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<GachaPull {str(self.id)[:8]}... x{self.pull_count} value={self.total_value}>"


class UserItem(Base, UUIDMixin, TimestampMixin):
    """A user's stack of one gacha item."""

    __tablename__ = "user_items"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gacha_item_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("gacha_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_equipped: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    obtained_from: Mapped[str] = mapped_column(String(30), default="gacha", nullable=False)
    obtained_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    item: Mapped["GachaItem"] = relationship("GachaItem", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "gacha_item_id", name="uq_user_item"),
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
    )
