"""Points API endpoints.

Endpoints:
- GET /points/balance - Current balance and rank
- GET /points/transactions - Ledger history
- GET /points/summary - Totals by source and type
"""

from fastapi import APIRouter, Query

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.models.points import PointTransaction, TransactionType
from points_forest.schemas.responses import (
    BalanceResponse,
    PointsSummaryResponse,
    TransactionListResponse,
    TransactionResponse,
)
from points_forest.services.points import PointsService
from points_forest.services.stats import StatsService

router = APIRouter(prefix="/points", tags=["Points"])


def _to_response(tx: PointTransaction) -> TransactionResponse:
    return TransactionResponse(
        id=tx.id,
        tx_type=tx.tx_type.value,
        source=tx.source,
        amount=tx.amount,
        balance_before=tx.balance_before,
        balance_after=tx.balance_after,
        description=tx.description,
        reference_id=tx.reference_id,
        created_at=tx.created_at,
    )


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(current_user: CurrentUser, db: DbSession) -> BalanceResponse:
    points = await PointsService(db).get_balance(current_user.id)
    return BalanceResponse(
        points=points,
        level=current_user.level,
        experience=current_user.experience,
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def get_transactions(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    tx_type: TransactionType | None = Query(default=None),
    source: str | None = Query(default=None, max_length=30),
) -> TransactionListResponse:
    transactions = await PointsService(db).get_transactions(
        current_user.id,
        limit=limit,
        offset=offset,
        tx_type=tx_type,
        source=source,
    )
    return TransactionListResponse(
        items=[_to_response(tx) for tx in transactions],
        limit=limit,
        offset=offset,
    )


@router.get("/summary", response_model=PointsSummaryResponse)
async def get_summary(current_user: CurrentUser, db: DbSession) -> PointsSummaryResponse:
    stats = await StatsService(db).get_user_stats(current_user.id)
    return PointsSummaryResponse(**stats)
