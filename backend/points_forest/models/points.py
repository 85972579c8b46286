"""Point transaction ledger model.

Every balance change is recorded here with:
- Signed amount and before/after balances
- Source (which feature produced it) and optional reference id
- Integrity hash for tamper detection
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Enum as SQLEnum, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from points_forest.models.base import Base, UUIDMixin


class TransactionType(str, Enum):
    """Ledger entry types."""

    EARN = "earn"
    SPEND = "spend"
    BONUS = "bonus"
    REFUND = "refund"
    ADMIN = "admin"


class TransactionSource(str, Enum):
    """Feature that produced a ledger entry."""

    GAME = "game"
    NUMBER_GUESS = "number_guess"
    ROULETTE = "roulette"
    SLOT_MACHINE = "slot_machine"
    GACHA = "gacha"
    DAILY_BONUS = "daily_bonus"
    QUEST = "quest"
    SPRING = "spring"
    ADMIN = "admin"


class PointTransaction(Base, UUIDMixin):
    """Immutable ledger entry."""

    __tablename__ = "point_transactions"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    tx_type: Mapped[TransactionType] = mapped_column(
        "type",
        SQLEnum(
            TransactionType,
            name="point_transaction_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
    )
    source: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Transaction amount (+credit/-debit)",
    )
    balance_before: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    extra_data: Mapped[dict] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
    )
    reference_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Related pull/session/quest id",
    )

    # Admin adjustments
    admin_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    integrity_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 hash for tamper detection",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_point_tx_user_created", "user_id", "created_at"),
        Index("ix_point_tx_user_source_created", "user_id", "source", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PointTransaction {str(self.id)[:8]}... "
            f"type={self.tx_type.value} amount={self.amount}>"
        )
