"""Admin API endpoints.

All endpoints require an administrator token.
"""

from fastapi import APIRouter, Query

from points_forest.api.deps import AdminUser, DbSession
from points_forest.logging_config import get_logger
from points_forest.schemas.common import ErrorResponse
from points_forest.schemas.requests import AdminAdjustPointsRequest
from points_forest.schemas.responses import AdminAdjustPointsResponse, AuditLogResponse
from points_forest.services.audit import AuditService
from points_forest.services.points import PointsService
from points_forest.services.stats import StatsService

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/points/adjust",
    response_model=AdminAdjustPointsResponse,
    responses={
        402: {"model": ErrorResponse, "description": "Deduction exceeds balance"},
        403: {"model": ErrorResponse, "description": "Not an administrator"},
    },
)
async def adjust_user_points(
    request: AdminAdjustPointsRequest,
    admin: AdminUser,
    db: DbSession,
) -> AdminAdjustPointsResponse:
    """Credit or deduct points manually. The balance never goes below 0."""
    tx = await PointsService(db).admin_adjust(
        request.user_id,
        request.amount,
        request.reason,
        admin.id,
    )

    logger.info(
        "admin_points_adjusted",
        admin_id=admin.id,
        target_user_id=request.user_id,
        amount=request.amount,
    )

    return AdminAdjustPointsResponse(
        transaction_id=tx.id,
        user_id=request.user_id,
        amount=tx.amount,
        balance_before=tx.balance_before,
        balance_after=tx.balance_after,
    )


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    admin: AdminUser,
    db: DbSession,
    date_range: str = Query(default="7d", alias="range", pattern="^(1d|7d|30d|90d)$"),
) -> dict:
    return await StatsService(db).get_admin_dashboard_stats(date_range)


@router.get("/stats/games")
async def get_game_stats(admin: AdminUser, db: DbSession) -> list[dict]:
    """Per-game plays, players and points, busiest game first."""
    return await StatsService(db).get_game_stats()


@router.get("/stats/points")
async def get_point_stats(admin: AdminUser, db: DbSession) -> dict:
    return await StatsService(db).get_point_stats()


@router.get("/stats/quests")
async def get_quest_stats(admin: AdminUser, db: DbSession) -> dict:
    return await StatsService(db).get_quest_stats()


@router.get("/stats/gacha")
async def get_gacha_stats(admin: AdminUser, db: DbSession) -> dict:
    return await StatsService(db).get_gacha_stats()


@router.get("/audit-logs", response_model=list[AuditLogResponse])
async def list_audit_logs(
    admin: AdminUser,
    db: DbSession,
    action: str | None = Query(default=None, max_length=50),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[AuditLogResponse]:
    logs = await AuditService(db).list_logs(action=action, limit=limit, offset=offset)
    return [AuditLogResponse.model_validate(log) for log in logs]


@router.get("/audit-logs/live")
async def recent_audit_stream(
    admin: AdminUser,
    db: DbSession,
    count: int = Query(default=100, ge=1, le=500),
    action: str | None = Query(default=None, max_length=50),
) -> list[dict]:
    """Latest entries from the Redis audit stream (empty when Redis is down)."""
    return await AuditService(db).get_recent_entries(count, action=action)
