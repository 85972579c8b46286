"""Current user endpoints: rank and UI settings."""

from fastapi import APIRouter

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.schemas.requests import SettingUpdateRequest
from points_forest.schemas.responses import RankResponse
from points_forest.services.experience import ExperienceService
from points_forest.services.settings_store import SettingsStore, UserSettings

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me/rank", response_model=RankResponse)
async def get_my_rank(current_user: CurrentUser, db: DbSession) -> RankResponse:
    info = await ExperienceService(db).get_rank_info(current_user.id)
    return RankResponse(**info)


@router.get("/me/settings", response_model=UserSettings)
async def get_my_settings(current_user: CurrentUser) -> UserSettings:
    return await SettingsStore().load(current_user.id)


@router.put("/me/settings", response_model=UserSettings)
async def replace_my_settings(settings: UserSettings, current_user: CurrentUser) -> UserSettings:
    return await SettingsStore().save(current_user.id, settings)


@router.patch("/me/settings", response_model=UserSettings)
async def update_my_setting(request: SettingUpdateRequest, current_user: CurrentUser) -> UserSettings:
    return await SettingsStore().update(current_user.id, request.path, request.value)


@router.delete("/me/settings", response_model=UserSettings)
async def reset_my_settings(current_user: CurrentUser) -> UserSettings:
    return await SettingsStore().reset(current_user.id)
