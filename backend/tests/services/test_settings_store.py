import pytest

from points_forest.services.settings_store import SettingsStore, UserSettings, merge_settings
from points_forest.utils.errors import InvalidInputError, RewardError
from points_forest.utils.json_utils import json_dumps, json_loads

USER_ID = "3f1c2a9e-0000-4000-8000-000000000001"
KEY = f"settings:{USER_ID}"


@pytest.fixture
def store(mock_redis):
    return SettingsStore(mock_redis)


@pytest.mark.asyncio
async def test_defaults_when_nothing_saved(store):
    settings = await store.load(USER_ID)

    assert settings == UserSettings()
    assert settings.theme == "forest"
    assert settings.language == "ja"


@pytest.mark.asyncio
async def test_saved_values_merged_over_defaults(store, mock_redis):
    mock_redis.get.return_value = json_dumps({"theme": "ocean", "notifications": {"email": False}, "legacy": 1})

    settings = await store.load(USER_ID)

    assert settings.theme == "ocean"
    assert settings.notifications.email is False
    assert settings.notifications.browser is True


@pytest.mark.asyncio
async def test_corrupt_blob_falls_back_to_defaults(store, mock_redis):
    mock_redis.get.return_value = "{not json"

    assert await store.load(USER_ID) == UserSettings()


@pytest.mark.asyncio
async def test_update_by_dotted_path(store, mock_redis):
    settings = await store.update(USER_ID, "game_settings.sound_effects", False)

    assert settings.game_settings.sound_effects is False
    key, blob = mock_redis.set.await_args.args
    assert key == KEY
    assert json_loads(blob)["game_settings"]["sound_effects"] is False


@pytest.mark.parametrize("path", ["missing", "notifications.sms", "theme.color"])
@pytest.mark.asyncio
async def test_update_unknown_path(store, mock_redis, path):
    with pytest.raises(InvalidInputError):
        await store.update(USER_ID, path, True)

    mock_redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_invalid_value(store):
    with pytest.raises(InvalidInputError) as exc_info:
        await store.update(USER_ID, "theme", "neon")

    assert exc_info.value.details["path"] == "theme"
    assert exc_info.value.details["errors"]


@pytest.mark.asyncio
async def test_reset(store, mock_redis):
    assert await store.reset(USER_ID) == UserSettings()
    mock_redis.delete.assert_awaited_once_with(KEY)


@pytest.mark.asyncio
async def test_unavailable_without_redis(monkeypatch):
    monkeypatch.setattr("points_forest.services.settings_store.get_redis", lambda: None)

    with pytest.raises(RewardError) as exc_info:
        await SettingsStore().load(USER_ID)

    assert exc_info.value.code == "FEATURE_UNAVAILABLE"


def test_merge_ignores_unknown_keys():
    assert merge_settings({"unknown": {"a": 1}}) == UserSettings()
