"""Business logic services."""

from points_forest.services.audit import AuditService
from points_forest.services.daily_bonus import DailyBonusService
from points_forest.services.daily_limit import DailyLimitService, DailyLimitStatus
from points_forest.services.experience import ExperienceService
from points_forest.services.gacha import GachaService
from points_forest.services.games import GameService
from points_forest.services.points import PointsService
from points_forest.services.quests import QuestService
from points_forest.services.settings_store import SettingsStore, UserSettings
from points_forest.services.stats import StatsService

__all__ = [
    "AuditService",
    "DailyBonusService",
    "DailyLimitService",
    "DailyLimitStatus",
    "ExperienceService",
    "GachaService",
    "GameService",
    "PointsService",
    "QuestService",
    "SettingsStore",
    "StatsService",
    "UserSettings",
]
