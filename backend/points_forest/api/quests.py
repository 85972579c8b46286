"""Quest API endpoints."""

from fastapi import APIRouter

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.models.quest import UserQuest
from points_forest.schemas.common import ErrorResponse
from points_forest.schemas.responses import QuestClaimResponse, QuestResponse
from points_forest.services.quests import QuestService

router = APIRouter(prefix="/quests", tags=["Quests"])


def _to_response(quest: UserQuest) -> QuestResponse:
    template = quest.template
    return QuestResponse(
        id=quest.id,
        name=template.name,
        description=template.description,
        type=template.type,
        category=template.category,
        difficulty=template.difficulty,
        status=quest.status,
        current_value=quest.current_value,
        target_value=quest.target_value,
        progress=quest.progress,
        reward_points=template.reward_points,
        rewards_claimed=quest.rewards_claimed,
        expires_at=quest.expires_at,
        completed_at=quest.completed_at,
    )


@router.get("", response_model=list[QuestResponse])
async def get_quests(current_user: CurrentUser, db: DbSession) -> list[QuestResponse]:
    """Today's quests. Daily quests are assigned on first access."""
    quests = await QuestService(db).get_user_quests(current_user.id)
    return [_to_response(q) for q in quests]


@router.post(
    "/{quest_id}/claim",
    response_model=QuestClaimResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Quest not found"},
        409: {"model": ErrorResponse, "description": "Not completed or already claimed"},
    },
)
async def claim_quest_reward(
    quest_id: str,
    current_user: CurrentUser,
    db: DbSession,
) -> QuestClaimResponse:
    result = await QuestService(db).claim_quest_reward(current_user.id, quest_id)
    return QuestClaimResponse(**result)
