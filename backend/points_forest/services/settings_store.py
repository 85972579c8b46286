"""Per-user UI settings kept in Redis.

One JSON blob per user under ``settings:{user_id}``, no expiry. Saved values
are merged over the defaults on load so new settings appear for existing
users without a migration.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis

from points_forest.utils.errors import ErrorCode, InvalidInputError, RewardError
from points_forest.utils.json_utils import json_dumps, json_loads
from points_forest.utils.redis_client import get_redis

logger = logging.getLogger(__name__)


class NotificationSettings(BaseModel):
    email: bool = True
    browser: bool = True
    game_updates: bool = True
    achievement_alerts: bool = True
    daily_reminder: bool = True
    weekly_report: bool = False


class GameSettings(BaseModel):
    sound_effects: bool = True
    animations: bool = True
    auto_play: bool = False
    confirm_actions: bool = True


class PrivacySettings(BaseModel):
    show_profile: bool = True
    show_stats: bool = True
    show_achievements: bool = True
    allow_friend_requests: bool = True


class UserSettings(BaseModel):
    theme: Literal["forest", "ocean", "sunset", "dark"] = "forest"
    notifications: NotificationSettings = NotificationSettings()
    game_settings: GameSettings = GameSettings()
    privacy: PrivacySettings = PrivacySettings()
    language: Literal["ja", "en"] = "ja"


def merge_settings(saved: dict[str, Any]) -> UserSettings:
    """Overlay a saved blob on the defaults, one level deep."""
    merged = UserSettings().model_dump()
    for key, value in saved.items():
        if key not in merged:
            continue
        if isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return UserSettings.model_validate(merged)


class SettingsStore:
    KEY_PREFIX = "settings:"

    def __init__(self, redis: Redis | None = None) -> None:
        self._redis = redis if redis is not None else get_redis()

    def _key(self, user_id: str) -> str:
        return f"{self.KEY_PREFIX}{user_id}"

    def _client(self) -> Redis:
        if self._redis is None:
            raise RewardError(ErrorCode.FEATURE_UNAVAILABLE, "Settings are temporarily unavailable")
        return self._redis

    async def load(self, user_id: str) -> UserSettings:
        raw = await self._client().get(self._key(user_id))
        if raw is None:
            return UserSettings()

        try:
            saved = json_loads(raw)
            if not isinstance(saved, dict):
                raise ValueError("settings blob is not an object")
            return merge_settings(saved)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unreadable settings for user={user_id[:8]}..., using defaults: {e}")
            return UserSettings()

    async def save(self, user_id: str, settings: UserSettings) -> UserSettings:
        await self._client().set(self._key(user_id), json_dumps(settings.model_dump()))
        return settings

    async def update(self, user_id: str, path: str, value: Any) -> UserSettings:
        """Set one value by dotted path, e.g. ``notifications.email``.

        Raises:
            InvalidInputError: Unknown path or invalid value
        """
        current = (await self.load(user_id)).model_dump()
        parts = path.split(".")

        target = current
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                raise InvalidInputError("Unknown setting", {"path": path})
            target = target[part]
        if parts[-1] not in target:
            raise InvalidInputError("Unknown setting", {"path": path})
        target[parts[-1]] = value

        try:
            settings = UserSettings.model_validate(current)
        except ValidationError as e:
            raise InvalidInputError(
                "Invalid setting value",
                {"path": path, "errors": [err["msg"] for err in e.errors()]},
            ) from e

        return await self.save(user_id, settings)

    async def reset(self, user_id: str) -> UserSettings:
        await self._client().delete(self._key(user_id))
        return UserSettings()
