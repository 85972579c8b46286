"""Mini-game API endpoints.

Endpoints:
- GET /games - Active games
- GET /games/{game_id}/remaining - Plays left today
- POST /games/{game_id}/sessions - Record a client-scored play
- POST /games/roulette/{slug}/play - Spin a prize wheel
- POST /games/slot/play - Spin the slot machine
- POST /games/number-guess/{slug}/play - Guess the number
"""

from fastapi import APIRouter

from points_forest.api.deps import CurrentUser, DbSession
from points_forest.schemas.common import ErrorResponse
from points_forest.schemas.requests import GameSessionRequest, NumberGuessRequest
from points_forest.schemas.responses import (
    GameResponse,
    GameSessionResponse,
    RemainingPlaysResponse,
)
from points_forest.services.games import GameService

router = APIRouter(prefix="/games", tags=["Games"])

_PLAY_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Game not found"},
    429: {"model": ErrorResponse, "description": "Daily limit reached"},
    503: {"model": ErrorResponse, "description": "Limit store unavailable"},
}


@router.get("", response_model=list[GameResponse])
async def list_games(current_user: CurrentUser, db: DbSession) -> list[GameResponse]:
    games = await GameService(db).list_games()
    return [GameResponse(**g) for g in games]


@router.get("/{game_id}/remaining", response_model=RemainingPlaysResponse)
async def get_remaining_plays(
    game_id: str,
    current_user: CurrentUser,
    db: DbSession,
) -> RemainingPlaysResponse:
    status = await GameService(db).remaining(current_user.id, game_id)
    return RemainingPlaysResponse(**status.to_dict())


@router.post("/{game_id}/sessions", response_model=GameSessionResponse, responses=_PLAY_RESPONSES)
async def record_game_session(
    game_id: str,
    request: GameSessionRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> GameSessionResponse:
    result = await GameService(db).handle_game_session(
        current_user.id,
        game_id,
        score=request.score,
        points_earned=request.points_earned,
        duration_seconds=request.duration_seconds,
        metadata=request.metadata,
    )
    return GameSessionResponse(**result)


@router.post("/roulette/{slug}/play", response_model=GameSessionResponse, responses=_PLAY_RESPONSES)
async def play_roulette(
    slug: str,
    current_user: CurrentUser,
    db: DbSession,
) -> GameSessionResponse:
    result = await GameService(db).play_roulette(current_user.id, slug)
    return GameSessionResponse(**result)


@router.post("/slot/play", response_model=GameSessionResponse, responses=_PLAY_RESPONSES)
async def play_slot(current_user: CurrentUser, db: DbSession) -> GameSessionResponse:
    result = await GameService(db).play_slot(current_user.id)
    return GameSessionResponse(**result)


@router.post(
    "/number-guess/{slug}/play",
    response_model=GameSessionResponse,
    responses=_PLAY_RESPONSES,
)
async def play_number_guess(
    slug: str,
    request: NumberGuessRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> GameSessionResponse:
    result = await GameService(db).play_number_guess(current_user.id, slug, request.guess)
    return GameSessionResponse(**result)
