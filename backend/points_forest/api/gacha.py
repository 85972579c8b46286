"""Gacha API endpoints.

Endpoints:
- GET /gacha/machines - Available machines grouped by type
- POST /gacha/{slug}/pull - Pay for and resolve a 1x/10x pull
- GET /gacha/{slug}/pulls-today - Today's pulls on a machine
- GET /gacha/pulls/recent - Latest pulls
- GET /gacha/stats - Lifetime gacha statistics
- GET /gacha/pulls/{pull_id}/reveal - Staged reveal of a pull (NDJSON stream)
"""

from collections.abc import AsyncIterator

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.engine.reveal import RevealSequencer, RevealState, build_summary
from points_forest.schemas.common import ErrorResponse
from points_forest.schemas.requests import GachaPullRequest
from points_forest.schemas.responses import (
    GachaMachineResponse,
    GachaPullRecord,
    GachaPullResponse,
    GachaStatsResponse,
    PullsTodayResponse,
)
from points_forest.services.gacha import GachaService, pull_to_dict
from points_forest.utils.json_utils import json_dumps_bytes

router = APIRouter(prefix="/gacha", tags=["Gacha"])


@router.get("/machines", response_model=dict[str, list[GachaMachineResponse]])
async def list_machines(
    current_user: CurrentUser,
    db: DbSession,
) -> dict[str, list[GachaMachineResponse]]:
    grouped = await GachaService(db).list_machines()
    return {
        group: [GachaMachineResponse.model_validate(m) for m in machines]
        for group, machines in grouped.items()
    }


@router.post(
    "/{slug}/pull",
    response_model=GachaPullResponse,
    responses={
        402: {"model": ErrorResponse, "description": "Not enough points"},
        429: {"model": ErrorResponse, "description": "Daily limit reached"},
        503: {"model": ErrorResponse, "description": "Limit store unavailable"},
    },
)
async def execute_pull(
    slug: str,
    request: GachaPullRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> GachaPullResponse:
    """Pay for a pull. The balance drops by the cost, independent of the
    value of the items received."""
    result = await GachaService(db).execute_pull(current_user.id, slug, request.pull_count)
    return GachaPullResponse(**result)


@router.get("/{slug}/pulls-today", response_model=PullsTodayResponse)
async def get_pulls_today(
    slug: str,
    current_user: CurrentUser,
    db: DbSession,
) -> PullsTodayResponse:
    result = await GachaService(db).get_user_pulls_today(current_user.id, slug)
    return PullsTodayResponse(**result)


@router.get("/pulls/recent", response_model=list[GachaPullRecord])
async def get_recent_pulls(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(default=10, ge=1, le=50),
) -> list[GachaPullRecord]:
    pulls = await GachaService(db).get_recent_pulls(current_user.id, limit)
    return [GachaPullRecord(**pull_to_dict(p)) for p in pulls]


@router.get("/stats", response_model=GachaStatsResponse)
async def get_stats(
    current_user: CurrentUser,
    db: DbSession,
) -> GachaStatsResponse:
    stats = await GachaService(db).get_stats(current_user.id)
    return GachaStatsResponse(**stats.to_dict())


@router.get(
    "/pulls/{pull_id}/reveal",
    response_class=StreamingResponse,
    responses={200: {"content": {"application/x-ndjson": {}}}},
)
async def reveal_pull(
    pull_id: str,
    current_user: CurrentUser,
    db: DbSession,
) -> StreamingResponse:
    """Replay a pull as timed reveal events, one JSON object per line.

    Items are already drawn; the stream only paces their disclosure. A
    client that disconnects cancels the remaining steps.
    """
    pull = await GachaService(db).get_pull(current_user.id, pull_id)
    items = list(pull.items_received)
    summary = build_summary(items, pull.cost_paid)

    async def stream() -> AsyncIterator[bytes]:
        events = RevealSequencer(items).events()
        try:
            async for event in events:
                payload = event.to_dict()
                if event.state is RevealState.SUMMARY:
                    payload["summary"] = summary
                yield json_dumps_bytes(payload) + b"\n"
        finally:
            await events.aclose()

    return StreamingResponse(stream(), media_type="application/x-ndjson")
