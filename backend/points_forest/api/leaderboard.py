"""Leaderboard API endpoints."""

from fastapi import APIRouter

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.schemas.responses import LeaderboardResponse
from points_forest.services.leaderboard import BOARD_TITLES, LeaderboardService, LeaderboardType

router = APIRouter(prefix="/leaderboards", tags=["Leaderboards"])


@router.get("")
async def list_leaderboards(current_user: CurrentUser) -> list[dict]:
    return [{"type": board.value, "title": title} for board, title in BOARD_TITLES.items()]


@router.get("/{board}", response_model=LeaderboardResponse)
async def get_leaderboard(
    board: LeaderboardType,
    current_user: CurrentUser,
    db: DbSession,
) -> LeaderboardResponse:
    result = await LeaderboardService(db).get_leaderboard(board, current_user.id)
    return LeaderboardResponse(**result)
