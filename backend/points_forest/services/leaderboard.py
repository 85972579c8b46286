"""Player leaderboards.

Boards rank non-banned players by one value, highest first, with ties
broken by username. Ranks are positions in that order. Raw rows are cached
for a minute; the current player's flag and rank are added per request.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.logging_config import get_logger
from points_forest.models.game import GameSession
from points_forest.models.points import PointTransaction, TransactionType
from points_forest.models.user import User
from points_forest.utils.cache import CacheKeys, reward_cache
from points_forest.utils.day_window import month_start, utcnow, week_start

logger = get_logger(__name__)

BOARD_SIZE = 100


class LeaderboardType(str, Enum):
    TOTAL_POINTS = "total_points"
    WEEKLY_POINTS = "weekly_points"
    MONTHLY_GAMES = "monthly_games"
    LOGIN_STREAK = "login_streak"


BOARD_TITLES = {
    LeaderboardType.TOTAL_POINTS: "Total points",
    LeaderboardType.WEEKLY_POINTS: "Points earned this week",
    LeaderboardType.MONTHLY_GAMES: "Games played this month",
    LeaderboardType.LOGIN_STREAK: "Login streak",
}


def period_start(board: LeaderboardType, now: datetime) -> datetime | None:
    """Start of the window a board counts, ``None`` for all-time boards."""
    if board is LeaderboardType.WEEKLY_POINTS:
        return week_start(now)
    if board is LeaderboardType.MONTHLY_GAMES:
        return month_start(now)
    return None


def rank_entries(rows: Iterable[Mapping[str, Any]], current_user_id: str | None = None) -> list[dict[str, Any]]:
    """Number already-ordered rows and flag the current player.

    ``display_name`` falls back to the username.
    """
    return [
        {
            "rank": position,
            "user_id": row["user_id"],
            "username": row["username"],
            "display_name": row.get("display_name") or row["username"],
            "value": int(row["value"] or 0),
            "is_current_user": row["user_id"] == current_user_id,
        }
        for position, row in enumerate(rows, start=1)
    ]


class LeaderboardService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_leaderboard(
        self,
        board: LeaderboardType,
        current_user_id: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utcnow()
        start = period_start(board, now)

        async def load() -> list[dict[str, Any]]:
            result = await self.session.execute(self._board_query(board, start))
            return [dict(row._mapping) for row in result.all()]

        rows = await reward_cache.get_or_load(CacheKeys.leaderboard(board.value), load, CacheKeys.LEADERBOARD_TTL)
        entries = rank_entries(rows or [], current_user_id)
        my_rank = next((e["rank"] for e in entries if e["is_current_user"]), None)

        logger.debug("leaderboard_served", board=board.value, entries=len(entries))
        return {
            "type": board.value,
            "title": BOARD_TITLES[board],
            "period_start": start.isoformat() if start else None,
            "entries": entries,
            "my_rank": my_rank,
        }

    def _board_query(self, board: LeaderboardType, start: datetime | None):
        identity = (
            User.id.label("user_id"),
            User.username,
            User.display_name,
        )

        if board is LeaderboardType.TOTAL_POINTS:
            query = select(*identity, User.points.label("value"))
        elif board is LeaderboardType.LOGIN_STREAK:
            query = select(*identity, User.login_streak.label("value"))
        elif board is LeaderboardType.WEEKLY_POINTS:
            query = (
                select(*identity, func.sum(PointTransaction.amount).label("value"))
                .join(PointTransaction, PointTransaction.user_id == User.id)
                .where(
                    PointTransaction.tx_type == TransactionType.EARN,
                    PointTransaction.created_at >= start,
                )
                .group_by(User.id, User.username, User.display_name)
            )
        else:
            query = (
                select(*identity, func.count(GameSession.id).label("value"))
                .join(GameSession, GameSession.user_id == User.id)
                .where(GameSession.created_at >= start)
                .group_by(User.id, User.username, User.display_name)
            )

        return (
            query.where(User.is_banned.is_(False))
            .order_by(desc("value"), User.username)
            .limit(BOARD_SIZE)
        )
