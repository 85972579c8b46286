"""Lucky spring API endpoints.

Endpoints:
- GET /springs - Active springs with today's visits
- POST /springs/{slug}/visit - Visit a spring
- GET /springs/history - Latest visits and totals
"""

from fastapi import APIRouter, Query

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.schemas.common import ErrorResponse
from points_forest.schemas.responses import SpringStatusResponse, SpringVisitResponse
from points_forest.services.springs import HISTORY_LIMIT, SpringService

router = APIRouter(prefix="/springs", tags=["Springs"])


@router.get("", response_model=list[SpringStatusResponse])
async def list_springs(current_user: CurrentUser, db: DbSession) -> list[SpringStatusResponse]:
    springs = await SpringService(db).list_springs(current_user)
    return [SpringStatusResponse(**s) for s in springs]


@router.get("/history")
async def get_spring_history(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(default=HISTORY_LIMIT, ge=1, le=100),
) -> dict:
    return await SpringService(db).get_history(current_user.id, limit)


@router.post(
    "/{slug}/visit",
    response_model=SpringVisitResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Level or premium required"},
        404: {"model": ErrorResponse, "description": "Spring not found"},
        429: {"model": ErrorResponse, "description": "Daily visits used up"},
        503: {"model": ErrorResponse, "description": "Limit store unavailable"},
    },
)
async def visit_spring(slug: str, current_user: CurrentUser, db: DbSession) -> SpringVisitResponse:
    result = await SpringService(db).visit_spring(current_user.id, slug)
    return SpringVisitResponse(**result)
