"""Mini-game catalogue and play sessions.

Every play, whether the score was computed by the client or drawn here, is
persisted through ``handle_game_session`` so limits, ledger entries,
experience and quest progress are applied the same way.
"""

import logging
import random
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.config import get_settings
from points_forest.engine import number_guess, roulette, slots
from points_forest.middleware.prometheus import record_game_play
from points_forest.models.game import Game, GameSession, GameType
from points_forest.models.points import TransactionSource
from points_forest.models.quest import QuestCategory
from points_forest.models.user import User
from points_forest.services.daily_limit import DailyLimitService, DailyLimitStatus
from points_forest.services.experience import ExperienceService, game_experience
from points_forest.services.points import PointsService
from points_forest.services.quests import QuestService
from points_forest.utils.cache import CacheKeys, reward_cache
from points_forest.utils.day_window import utcnow
from points_forest.utils.errors import (
    GameInactiveError,
    GameNotFoundError,
    InvalidScoreError,
    PremiumRequiredError,
    UserBannedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

_LEDGER_SOURCES = {source.value for source in TransactionSource}


def game_to_dict(game: Game) -> dict[str, Any]:
    return {
        "id": game.id,
        "name": game.name,
        "slug": game.slug,
        "description": game.description,
        "type": game.type,
        "config": game.config,
        "daily_limit": game.daily_limit,
        "min_points": game.min_points,
        "max_points": game.max_points,
        "requires_premium": game.requires_premium,
        "sort_order": game.sort_order,
    }


def ledger_source(game_type: str) -> str:
    return game_type if game_type in _LEDGER_SOURCES else TransactionSource.GAME.value


def clamp_points(points: int, game: Game) -> int:
    return max(game.min_points, min(game.max_points, points))


class GameService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None) -> None:
        self.session = session
        self._rng = rng or random.SystemRandom()
        self._limits = DailyLimitService(session)

    async def list_games(self) -> list[dict[str, Any]]:
        """Active games in display order (cached for 30 minutes)."""

        async def load() -> list[dict[str, Any]]:
            result = await self.session.execute(
                select(Game).where(Game.is_active.is_(True)).order_by(Game.sort_order, Game.name)
            )
            return [game_to_dict(game) for game in result.scalars().all()]

        return await reward_cache.get_or_load(CacheKeys.games(), load, CacheKeys.GAMES_TTL)

    def daily_limit_for(self, game: Game) -> int | None:
        if game.daily_limit is None and game.type == GameType.SLOT_MACHINE.value:
            return get_settings().slot_daily_limit
        return game.daily_limit

    async def get_game(self, game_id: str) -> Game:
        game = await self.session.get(Game, game_id)
        if not game:
            raise GameNotFoundError(game_id)
        if not game.is_active:
            raise GameInactiveError(game_id)
        return game

    async def get_game_by_slug(self, slug: str, game_type: GameType) -> Game:
        result = await self.session.execute(
            select(Game).where(Game.slug == slug, Game.type == game_type.value)
        )
        game = result.scalar_one_or_none()
        if not game:
            raise GameNotFoundError(slug)
        if not game.is_active:
            raise GameInactiveError(slug)
        return game

    async def get_slot_machine(self) -> Game:
        result = await self.session.execute(
            select(Game)
            .where(Game.type == GameType.SLOT_MACHINE.value, Game.is_active.is_(True))
            .order_by(Game.sort_order)
            .limit(1)
        )
        game = result.scalar_one_or_none()
        if not game:
            raise GameNotFoundError(GameType.SLOT_MACHINE.value)
        return game

    async def remaining(self, user_id: str, game_id: str, now: datetime | None = None) -> DailyLimitStatus:
        now = now or utcnow()
        game = await self.get_game(game_id)
        return await self._limits.remaining(
            self.daily_limit_for(game),
            self._limits.game_sessions_counter(user_id, game.id, now),
            now,
        )

    async def handle_game_session(
        self,
        user_id: str,
        game_id: str,
        score: int,
        points_earned: int,
        duration_seconds: int | None = None,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
        server_drawn: bool = False,
    ) -> dict[str, Any]:
        """Record a finished play and pay out its points.

        Client-reported points are clamped to the game's range; outcomes
        drawn by the ``play_*`` methods are paid as drawn.

        The session is committed before the daily-limit reservation is kept,
        so a failed commit gives the play back.

        Raises:
            GameNotFoundError / GameInactiveError
            InvalidScoreError: Negative score or points
            DailyLimitExceededError / LimitStoreUnavailableError
        """
        now = now or utcnow()
        if score < 0 or points_earned < 0:
            raise InvalidScoreError("Score and points cannot be negative")

        game = await self.get_game(game_id)

        user = await self.session.get(User, user_id)
        if not user:
            raise UserNotFoundError(user_id)
        if user.is_banned:
            raise UserBannedError(user_id)
        if game.requires_premium and not user.is_premium:
            raise PremiumRequiredError(f"game:{game.slug}")

        limit = self.daily_limit_for(game)
        action = f"game:{game.id}"
        counter = self._limits.game_sessions_counter(user_id, game.id, now)

        plays_today = None
        if limit is not None:
            plays_today = await self._limits.consume(action, user_id, limit, counter, now=now)

        try:
            points = points_earned if server_drawn else clamp_points(points_earned, game)
            session_id = str(uuid4())

            self.session.add(
                GameSession(
                    id=session_id,
                    user_id=user_id,
                    game_id=game.id,
                    score=score,
                    points_earned=points,
                    duration_seconds=duration_seconds,
                    game_data=metadata or {},
                    created_at=now,
                )
            )
            await self.session.flush()

            if points > 0:
                await PointsService(self.session).earn(
                    user_id,
                    points,
                    ledger_source(game.type),
                    description=f"{game.name}: {points} points",
                    reference_id=session_id,
                    metadata={"game": game.slug, "score": score},
                )

            exp = await ExperienceService(self.session).grant_experience(
                user_id, game_experience(points), f"game:{game.slug}"
            )
            quests = await QuestService(self.session).update_quest_progress(
                user_id, QuestCategory.GAME.value, action_type="game_complete", now=now
            )
            await self.session.commit()

        except Exception:
            if limit is not None:
                await self._limits.release(action, user_id, now=now)
            raise

        if plays_today is None or plays_today == 0:
            plays_today, _ = await self._limits.count_today(counter)

        record_game_play(game.type, points)
        logger.info(
            f"Game session: user={user_id[:8]}... game={game.slug} "
            f"score={score} points={points} plays_today={plays_today}"
        )

        return {
            "success": True,
            "session_id": session_id,
            "points_earned": points,
            "exp_gained": exp["exp_gained"],
            "level_ups": exp["level_ups"],
            "quests_completed": quests["quests_completed"],
            "plays_today": plays_today,
            "remaining_plays": None if limit is None else max(0, limit - plays_today),
        }

    async def play_roulette(self, user_id: str, slug: str, now: datetime | None = None) -> dict[str, Any]:
        game = await self.get_game_by_slug(slug, GameType.ROULETTE)
        result = roulette.spin(roulette.segments_from_config(game.config), self._rng)

        outcome = await self.handle_game_session(
            user_id,
            game.id,
            score=result.points_earned,
            points_earned=result.points_earned,
            metadata={"segment_id": result.segment.id, "label": result.segment.label},
            now=now,
            server_drawn=True,
        )
        outcome["result"] = {
            "segment_id": result.segment.id,
            "label": result.segment.label,
            "color": result.segment.color,
            "tier": result.tier,
            "message": result.message,
        }
        return outcome

    async def play_slot(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        game = await self.get_slot_machine()
        result = slots.play(self._rng)

        outcome = await self.handle_game_session(
            user_id,
            game.id,
            score=result.points_earned,
            points_earned=result.points_earned,
            metadata={"symbols": list(result.symbols), "combination": result.combination},
            now=now,
            server_drawn=True,
        )
        outcome["result"] = {
            "symbols": list(result.symbols),
            "icons": result.icons,
            "combination": result.combination,
            "multiplier": result.multiplier,
            "message": result.message,
        }
        return outcome

    async def play_number_guess(
        self,
        user_id: str,
        slug: str,
        guess: int,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        game = await self.get_game_by_slug(slug, GameType.NUMBER_GUESS)
        result = number_guess.evaluate_guess(guess, number_guess.draw_target(self._rng))

        outcome = await self.handle_game_session(
            user_id,
            game.id,
            score=result.score,
            points_earned=result.points_earned,
            metadata={"guess": result.guess, "target": result.target},
            now=now,
            server_drawn=True,
        )
        outcome["result"] = {
            "guess": result.guess,
            "target": result.target,
            "score": result.score,
            "message": result.message,
        }
        return outcome
