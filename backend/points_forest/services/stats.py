"""Reward statistics.

The ``summarize_*`` functions are pure: they only read their arguments, so
the same rows always give the same result. The dashboard prefers a single
aggregated query per section and falls back to fetching rows and
summarising them in Python when that query fails. The per-domain admin
sections always summarise rows.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import case, distinct, func, select, union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from points_forest.logging_config import get_logger
from points_forest.models.gacha import GachaMachine, GachaPull, ItemRarity
from points_forest.models.game import Game, GameSession
from points_forest.models.points import PointTransaction
from points_forest.models.quest import QuestTemplate, UserQuest
from points_forest.models.user import User
from points_forest.utils.cache import CacheKeys, reward_cache
from points_forest.utils.day_window import utcnow
from points_forest.utils.errors import InvalidInputError, UserNotFoundError

logger = get_logger(__name__)

DATE_RANGES: dict[str, int] = {
    "1d": 1,
    "7d": 7,
    "30d": 30,
    "90d": 90,
}


@dataclass
class GachaStats:
    total_pulls: int = 0
    total_spent: int = 0
    total_value_received: int = 0
    items_obtained: int = 0
    rarity_distribution: dict[str, int] = field(default_factory=dict)
    lucky_streak: int = 0
    last_pull_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _get(row: Any, name: str, default: Any = None) -> Any:
    if isinstance(row, Mapping):
        return row.get(name, default)
    return getattr(row, name, default)


def summarize_gacha_pulls(pulls: Iterable[Any]) -> GachaStats:
    """Lifetime gacha totals for one user.

    Each row needs ``cost_paid``, ``total_value``, ``items_received`` and
    ``created_at``. ``total_pulls`` counts pull records, not items.
    """
    stats = GachaStats()
    rarities: Counter[str] = Counter()

    for pull in pulls:
        items = _get(pull, "items_received") or []
        stats.total_pulls += 1
        stats.total_spent += int(_get(pull, "cost_paid") or 0)
        stats.total_value_received += int(_get(pull, "total_value") or 0)
        stats.items_obtained += len(items)
        rarities.update(item.get("rarity", "common") for item in items)

        created_at = _get(pull, "created_at")
        if created_at and (stats.last_pull_at is None or created_at > stats.last_pull_at):
            stats.last_pull_at = created_at

    stats.rarity_distribution = dict(sorted(rarities.items()))
    return stats


def summarize_point_transactions(transactions: Iterable[Any]) -> dict[str, Any]:
    earned = 0
    spent = 0
    count = 0
    by_source: dict[str, int] = defaultdict(int)
    by_type: dict[str, int] = defaultdict(int)

    for tx in transactions:
        amount = int(_get(tx, "amount") or 0)
        tx_type = _get(tx, "tx_type")
        type_key = getattr(tx_type, "value", tx_type) or "unknown"

        count += 1
        if amount > 0:
            earned += amount
        else:
            spent += -amount
        by_source[_get(tx, "source") or "unknown"] += amount
        by_type[type_key] += amount

    return {
        "total_earned": earned,
        "total_spent": spent,
        "net": earned - spent,
        "transactions": count,
        "by_source": dict(sorted(by_source.items())),
        "by_type": dict(sorted(by_type.items())),
    }


def _window_start(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def summarize_dashboard(
    users: Iterable[Any],
    transactions: Iterable[Any],
    sessions: Iterable[Any],
    start: datetime,
    now: datetime,
    period: str = "7d",
) -> dict[str, Any]:
    """Admin dashboard numbers computed from raw rows.

    A user counts as active when they have a ledger entry or a game session
    in the window (one day for daily, seven for weekly).
    """
    transactions = list(transactions)
    sessions = list(sessions)
    day_ago = _window_start(now, 1)
    week_ago = _window_start(now, 7)

    def active_since(since: datetime) -> int:
        ids = {_get(r, "user_id") for r in transactions if _get(r, "created_at") >= since}
        ids |= {_get(r, "user_id") for r in sessions if _get(r, "created_at") >= since}
        return len(ids)

    all_users = list(users)
    new_users = sum(1 for u in all_users if _get(u, "created_at") and _get(u, "created_at") >= start)

    window_tx = [t for t in transactions if _get(t, "created_at") >= start]
    earned = sum(int(_get(t, "amount")) for t in window_tx if int(_get(t, "amount")) > 0)
    spent = sum(-int(_get(t, "amount")) for t in window_tx if int(_get(t, "amount")) < 0)

    window_sessions = [s for s in sessions if _get(s, "created_at") >= start]
    session_points = sum(int(_get(s, "points_earned") or 0) for s in window_sessions)

    return {
        "period": period,
        "start_date": start.isoformat(),
        "users": {
            "new_users": new_users,
            "daily_active": active_since(day_ago),
            "weekly_active": active_since(week_ago),
            "total_users": len(all_users),
        },
        "points": {
            "earned": earned,
            "spent": spent,
            "net_flow": earned - spent,
            "transactions": len(window_tx),
        },
        "games": {
            "total_sessions": len(window_sessions),
            "unique_players": len({_get(s, "user_id") for s in window_sessions}),
            "avg_points_per_session": (
                round(session_points / len(window_sessions), 2) if window_sessions else 0
            ),
        },
    }


PERIOD_WINDOWS = (("daily", 1), ("weekly", 7), ("monthly", 30))


def _period_counts(timestamps: Iterable[datetime | None], now: datetime, suffix: str) -> dict[str, int]:
    stamps = [ts for ts in timestamps if ts is not None]
    return {
        f"{name}_{suffix}": sum(1 for ts in stamps if ts >= _window_start(now, days))
        for name, days in PERIOD_WINDOWS
    }


def summarize_game_activity(
    sessions: Iterable[Any],
    game_names: Mapping[str, str],
    now: datetime,
) -> list[dict[str, Any]]:
    """Per-game play totals, busiest game first.

    Each session row needs ``game_id``, ``user_id``, ``score``,
    ``points_earned``, ``duration_seconds`` and ``created_at``.
    """
    by_game: dict[str, list[Any]] = defaultdict(list)
    for row in sessions:
        by_game[_get(row, "game_id")].append(row)

    stats = []
    for game_id, rows in by_game.items():
        plays = len(rows)
        stats.append(
            {
                "game_id": game_id,
                "game_name": game_names.get(game_id, "Unknown game"),
                "total_plays": plays,
                "total_players": len({_get(r, "user_id") for r in rows}),
                "total_points_awarded": sum(int(_get(r, "points_earned") or 0) for r in rows),
                "average_score": round(sum(int(_get(r, "score") or 0) for r in rows) / plays, 2),
                "average_session_duration": round(
                    sum(int(_get(r, "duration_seconds") or 0) for r in rows) / plays, 2
                ),
                **_period_counts((_get(r, "created_at") for r in rows), now, "plays"),
            }
        )
    return sorted(stats, key=lambda s: (-s["total_plays"], s["game_name"]))


def summarize_point_flow(transactions: Iterable[Any], now: datetime, top_n: int = 10) -> dict[str, Any]:
    """Points distributed and spent across all players.

    Rows need ``user_id``, ``username``, ``amount`` and ``created_at``.
    ``top_earners`` ranks players by credits only.
    """
    distributed = 0
    spent = 0
    windows = {name: 0 for name, _ in PERIOD_WINDOWS}
    earners: dict[str, int] = defaultdict(int)
    names: dict[str, str] = {}

    for tx in transactions:
        amount = int(_get(tx, "amount") or 0)
        if amount <= 0:
            spent += -amount
            continue
        distributed += amount
        user_id = _get(tx, "user_id")
        earners[user_id] += amount
        names[user_id] = _get(tx, "username") or "unknown"
        for name, days in PERIOD_WINDOWS:
            if _get(tx, "created_at") >= _window_start(now, days):
                windows[name] += amount

    top = sorted(earners.items(), key=lambda item: (-item[1], names[item[0]]))[:top_n]
    return {
        "total_points_distributed": distributed,
        "total_points_spent": spent,
        **{f"{name}_points_distributed": total for name, total in windows.items()},
        "top_earners": [
            {"user_id": user_id, "username": names[user_id], "total_points": total}
            for user_id, total in top
        ],
    }


def summarize_quest_activity(
    user_quests: Iterable[Any],
    quest_names: Mapping[str, str],
    now: datetime,
) -> dict[str, Any]:
    """Assignment and completion totals across all players.

    Rows need ``quest_template_id``, ``status``, ``completed_at``,
    ``rewards_claimed`` and ``points_earned``. The completion rate is a
    percentage of all assignments.
    """
    rows = list(user_quests)
    completed = [r for r in rows if _get(r, "completed_at") is not None]
    popular = Counter(_get(r, "quest_template_id") for r in completed)
    top_quest = popular.most_common(1)

    return {
        "total_active_quests": sum(1 for r in rows if _get(r, "status") == "active"),
        "total_completions": len(completed),
        "completion_rate": round(len(completed) / len(rows) * 100, 2) if rows else 0.0,
        "most_popular_quest": quest_names.get(top_quest[0][0], "N/A") if top_quest else "N/A",
        "total_rewards_distributed": sum(
            int(_get(r, "points_earned") or 0) for r in rows if _get(r, "rewards_claimed")
        ),
        **_period_counts((_get(r, "completed_at") for r in completed), now, "completions"),
    }


def summarize_gacha_activity(
    pulls: Iterable[Any],
    machine_names: Mapping[str, str],
    now: datetime,
    rarities: Iterable[str] = (),
) -> dict[str, Any]:
    """Pull totals across all players.

    Rows need ``gacha_machine_id``, ``cost_paid``, ``pull_count``,
    ``items_received`` and ``created_at``. Every name in ``rarities`` is
    reported, with zero when nothing of that rarity was drawn.
    """
    rows = list(pulls)
    rarity_counts: Counter[str] = Counter({rarity: 0 for rarity in rarities})
    for row in rows:
        rarity_counts.update(item.get("rarity", "common") for item in _get(row, "items_received") or [])
    top_machine = Counter(_get(r, "gacha_machine_id") for r in rows).most_common(1)

    return {
        "total_pulls": len(rows),
        "total_revenue": sum(int(_get(r, "cost_paid") or 0) for r in rows),
        "total_items_distributed": sum(int(_get(r, "pull_count") or 0) for r in rows),
        "most_popular_machine": machine_names.get(top_machine[0][0], "N/A") if top_machine else "N/A",
        "rarity_distribution": dict(rarity_counts),
        **_period_counts((_get(r, "created_at") for r in rows), now, "pulls"),
    }


class StatsService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_admin_dashboard_stats(
        self,
        date_range: str = "7d",
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Dashboard stats for ``1d|7d|30d|90d``.

        Raises:
            InvalidInputError: Unknown date range
        """
        if date_range not in DATE_RANGES:
            raise InvalidInputError(
                "Unsupported date range",
                {"range": date_range, "allowed": list(DATE_RANGES)},
            )

        now = now or utcnow()
        start = _window_start(now, DATE_RANGES[date_range])

        try:
            stats = await self._aggregate_dashboard(start, now, date_range)
            stats["source"] = "aggregate"
        except SQLAlchemyError as e:
            logger.warning(
                "dashboard_aggregate_failed",
                date_range=date_range,
                error=str(e),
            )
            await self.session.rollback()
            stats = await self._fallback_dashboard(start, now, date_range)
            stats["source"] = "fallback"

        return stats

    async def _aggregate_dashboard(self, start: datetime, now: datetime, period: str) -> dict[str, Any]:
        day_ago = _window_start(now, 1)
        week_ago = _window_start(now, 7)

        users_row = (
            await self.session.execute(
                select(
                    func.count(User.id),
                    func.count(User.id).filter(User.created_at >= start),
                )
            )
        ).one()

        async def active_since(since: datetime) -> int:
            ids = union(
                select(PointTransaction.user_id).where(PointTransaction.created_at >= since),
                select(GameSession.user_id).where(GameSession.created_at >= since),
            ).subquery()
            result = await self.session.execute(select(func.count()).select_from(ids))
            return int(result.scalar_one() or 0)

        points_row = (
            await self.session.execute(
                select(
                    func.coalesce(
                        func.sum(case((PointTransaction.amount > 0, PointTransaction.amount), else_=0)), 0
                    ),
                    func.coalesce(
                        func.sum(case((PointTransaction.amount < 0, -PointTransaction.amount), else_=0)), 0
                    ),
                    func.count(PointTransaction.id),
                ).where(PointTransaction.created_at >= start)
            )
        ).one()

        games_row = (
            await self.session.execute(
                select(
                    func.count(GameSession.id),
                    func.count(distinct(GameSession.user_id)),
                    func.coalesce(func.avg(GameSession.points_earned), 0),
                ).where(GameSession.created_at >= start)
            )
        ).one()

        earned, spent = int(points_row[0]), int(points_row[1])
        return {
            "period": period,
            "start_date": start.isoformat(),
            "users": {
                "new_users": int(users_row[1]),
                "daily_active": await active_since(day_ago),
                "weekly_active": await active_since(week_ago),
                "total_users": int(users_row[0]),
            },
            "points": {
                "earned": earned,
                "spent": spent,
                "net_flow": earned - spent,
                "transactions": int(points_row[2]),
            },
            "games": {
                "total_sessions": int(games_row[0]),
                "unique_players": int(games_row[1]),
                "avg_points_per_session": round(float(games_row[2]), 2),
            },
        }

    async def _fallback_dashboard(self, start: datetime, now: datetime, period: str) -> dict[str, Any]:
        since = min(start, _window_start(now, 7))

        users = (await self.session.execute(select(User.id, User.created_at))).all()
        transactions = (
            await self.session.execute(
                select(
                    PointTransaction.user_id,
                    PointTransaction.amount,
                    PointTransaction.created_at,
                ).where(PointTransaction.created_at >= since)
            )
        ).all()
        sessions = (
            await self.session.execute(
                select(
                    GameSession.user_id,
                    GameSession.points_earned,
                    GameSession.created_at,
                ).where(GameSession.created_at >= since)
            )
        ).all()

        return summarize_dashboard(
            [row._mapping for row in users],
            [row._mapping for row in transactions],
            [row._mapping for row in sessions],
            start,
            now,
            period,
        )

    async def get_user_stats(self, user_id: str) -> dict[str, Any]:
        """Points summary for one user, cached for two minutes."""

        async def load() -> dict[str, Any]:
            user = await self.session.get(User, user_id)
            if not user:
                raise UserNotFoundError(user_id)

            result = await self.session.execute(
                select(
                    PointTransaction.tx_type,
                    PointTransaction.source,
                    PointTransaction.amount,
                ).where(PointTransaction.user_id == user_id)
            )
            summary = summarize_point_transactions(row._mapping for row in result.all())
            summary.update(
                balance=user.points,
                level=user.level,
                experience=user.experience,
                login_streak=user.login_streak,
            )
            return summary

        return await reward_cache.get_or_load(CacheKeys.stats(user_id), load, CacheKeys.STATS_TTL)

    # =========================================================================
    # Per-domain admin sections
    # =========================================================================

    async def _names(self, id_column: Any, name_column: Any) -> dict[str, str]:
        result = await self.session.execute(select(id_column, name_column))
        return {row_id: name for row_id, name in result.all()}

    async def get_game_stats(self, now: datetime | None = None) -> list[dict[str, Any]]:
        now = now or utcnow()
        sessions = await self.session.execute(
            select(
                GameSession.game_id,
                GameSession.user_id,
                GameSession.score,
                GameSession.points_earned,
                GameSession.duration_seconds,
                GameSession.created_at,
            )
        )
        return summarize_game_activity(
            [row._mapping for row in sessions.all()],
            await self._names(Game.id, Game.name),
            now,
        )

    async def get_point_stats(self, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        transactions = await self.session.execute(
            select(
                PointTransaction.user_id,
                User.username,
                PointTransaction.amount,
                PointTransaction.created_at,
            ).join(User, User.id == PointTransaction.user_id)
        )
        return summarize_point_flow([row._mapping for row in transactions.all()], now)

    async def get_quest_stats(self, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        user_quests = await self.session.execute(
            select(
                UserQuest.quest_template_id,
                UserQuest.status,
                UserQuest.completed_at,
                UserQuest.rewards_claimed,
                UserQuest.points_earned,
            )
        )
        return summarize_quest_activity(
            [row._mapping for row in user_quests.all()],
            await self._names(QuestTemplate.id, QuestTemplate.name),
            now,
        )

    async def get_gacha_stats(self, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        pulls = await self.session.execute(
            select(
                GachaPull.gacha_machine_id,
                GachaPull.cost_paid,
                GachaPull.pull_count,
                GachaPull.items_received,
                GachaPull.created_at,
            )
        )
        return summarize_gacha_activity(
            [row._mapping for row in pulls.all()],
            await self._names(GachaMachine.id, GachaMachine.name),
            now,
            rarities=[rarity.value for rarity in ItemRarity],
        )
