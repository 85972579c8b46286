"""Daily bonus API endpoints."""

from fastapi import APIRouter, Query

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.schemas.common import ErrorResponse
from points_forest.schemas.responses import DailyBonusResponse, DailyBonusStatusResponse
from points_forest.services.daily_bonus import DailyBonusService

router = APIRouter(prefix="/daily-bonus", tags=["Daily Bonus"])


@router.post(
    "",
    response_model=DailyBonusResponse,
    responses={409: {"model": ErrorResponse, "description": "Already claimed today"}},
)
async def claim_daily_bonus(current_user: CurrentUser, db: DbSession) -> DailyBonusResponse:
    result = await DailyBonusService(db).process_daily_bonus(current_user.id)
    return DailyBonusResponse(**result)


@router.get("/status", response_model=DailyBonusStatusResponse)
async def get_daily_bonus_status(current_user: CurrentUser, db: DbSession) -> DailyBonusStatusResponse:
    result = await DailyBonusService(db).get_status(current_user.id)
    return DailyBonusStatusResponse(**result)


@router.get("/history")
async def get_daily_bonus_history(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(default=30, ge=1, le=100),
) -> dict:
    history = await DailyBonusService(db).get_history(current_user.id, limit)
    return {"history": history, "total": len(history)}
