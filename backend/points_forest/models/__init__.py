"""Database models."""

from points_forest.models.audit import AuditLog
from points_forest.models.base import Base, TimestampMixin, UUIDMixin
from points_forest.models.daily_bonus import DAILY_BONUS_REWARDS, DailyBonus
from points_forest.models.gacha import (
    CostType,
    GachaItem,
    GachaMachine,
    GachaPool,
    GachaPull,
    GachaType,
    ItemCategory,
    ItemRarity,
    UserItem,
)
from points_forest.models.game import Game, GameSession, GameType
from points_forest.models.points import PointTransaction, TransactionSource, TransactionType
from points_forest.models.quest import (
    QuestCategory,
    QuestStatus,
    QuestTemplate,
    QuestType,
    UserQuest,
)
from points_forest.models.spring import LuckySpring, SpringVisit
from points_forest.models.user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # User
    "User",
    # Ledger
    "PointTransaction",
    "TransactionType",
    "TransactionSource",
    # Games
    "Game",
    "GameSession",
    "GameType",
    # Gacha
    "GachaMachine",
    "GachaItem",
    "GachaPool",
    "GachaPull",
    "UserItem",
    "GachaType",
    "CostType",
    "ItemCategory",
    "ItemRarity",
    # Quests
    "QuestTemplate",
    "UserQuest",
    "QuestType",
    "QuestCategory",
    "QuestStatus",
    # Lucky springs
    "LuckySpring",
    "SpringVisit",
    # Daily bonus
    "DailyBonus",
    "DAILY_BONUS_REWARDS",
    # Audit
    "AuditLog",
]
