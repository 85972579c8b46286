"""Reward statistics tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import ProgrammingError

from factories import PLAYER_ID, make_result, make_user, mapping_row, session_get_for
from points_forest.models.points import TransactionType
from points_forest.services.stats import (
    StatsService,
    summarize_dashboard,
    summarize_gacha_activity,
    summarize_gacha_pulls,
    summarize_game_activity,
    summarize_point_flow,
    summarize_point_transactions,
    summarize_quest_activity,
)
from points_forest.utils.errors import InvalidInputError

NOW = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


def ago(**delta) -> datetime:
    return NOW - timedelta(**delta)


PULLS = [
    {
        "cost_paid": 100,
        "total_value": 15,
        "items_received": [{"rarity": "common"}, {"rarity": "rare"}],
        "created_at": ago(days=2),
    },
    {
        "cost_paid": 1000,
        "total_value": 300,
        "items_received": [{"rarity": "common"}] * 10,
        "created_at": ago(hours=1),
    },
]


class TestSummarizeGachaPulls:
    def test_totals(self):
        stats = summarize_gacha_pulls(PULLS)

        assert stats.total_pulls == 2
        assert stats.total_spent == 1100
        assert stats.total_value_received == 315
        assert stats.items_obtained == 12
        assert stats.rarity_distribution == {"common": 11, "rare": 1}
        assert stats.last_pull_at == ago(hours=1)

    def test_pure(self):
        assert summarize_gacha_pulls(PULLS) == summarize_gacha_pulls(PULLS)
        assert PULLS[0]["items_received"] == [{"rarity": "common"}, {"rarity": "rare"}]

    def test_empty(self):
        assert summarize_gacha_pulls([]).to_dict() == {
            "total_pulls": 0,
            "total_spent": 0,
            "total_value_received": 0,
            "items_obtained": 0,
            "rarity_distribution": {},
            "lucky_streak": 0,
            "last_pull_at": None,
        }


def test_summarize_point_transactions():
    rows = [
        {"tx_type": TransactionType.EARN, "source": "roulette", "amount": 50},
        {"tx_type": TransactionType.SPEND, "source": "gacha", "amount": -100},
        {"tx_type": TransactionType.BONUS, "source": "daily_bonus", "amount": 250},
    ]

    summary = summarize_point_transactions(rows)

    assert summary["total_earned"] == 300
    assert summary["total_spent"] == 100
    assert summary["net"] == 200
    assert summary["transactions"] == 3
    assert summary["by_source"] == {"daily_bonus": 250, "gacha": -100, "roulette": 50}
    assert summary["by_type"] == {"bonus": 250, "earn": 50, "spend": -100}


def test_summarize_dashboard_active_users():
    users = [
        {"id": "u1", "created_at": ago(days=40)},
        {"id": "u2", "created_at": ago(days=3)},
        {"id": "u3", "created_at": ago(hours=2)},
    ]
    transactions = [
        {"user_id": "u1", "amount": 50, "created_at": ago(hours=3)},
        {"user_id": "u2", "amount": -30, "created_at": ago(days=3)},
    ]
    sessions = [
        {"user_id": "u3", "points_earned": 20, "created_at": ago(hours=1)},
        {"user_id": "u3", "points_earned": 10, "created_at": ago(days=2)},
    ]

    stats = summarize_dashboard(users, transactions, sessions, ago(days=7), NOW, "7d")

    assert stats["users"] == {
        "new_users": 2,
        "daily_active": 2,
        "weekly_active": 3,
        "total_users": 3,
    }
    assert stats["points"] == {"earned": 50, "spent": 30, "net_flow": 20, "transactions": 2}
    assert stats["games"] == {"total_sessions": 2, "unique_players": 1, "avg_points_per_session": 15.0}


class TestAdminDashboard:
    @pytest.mark.asyncio
    async def test_invalid_range(self, mock_session):
        with pytest.raises(InvalidInputError) as exc_info:
            await StatsService(mock_session).get_admin_dashboard_stats("2w")

        assert exc_info.value.details["allowed"] == ["1d", "7d", "30d", "90d"]

    @pytest.mark.asyncio
    async def test_aggregate_path(self, mock_session):
        def one(*values):
            result = MagicMock()
            result.one.return_value = values
            return result

        mock_session.execute.side_effect = [
            one(10, 2),  # users
            one(500, 200, 12),  # points
            one(8, 3, 12.5),  # games
            make_result(count=4),  # daily active
            make_result(count=6),  # weekly active
        ]

        stats = await StatsService(mock_session).get_admin_dashboard_stats("7d", now=NOW)

        assert stats["source"] == "aggregate"
        assert stats["users"] == {"new_users": 2, "daily_active": 4, "weekly_active": 6, "total_users": 10}
        assert stats["points"]["net_flow"] == 300
        assert stats["games"]["avg_points_per_session"] == 12.5

    @pytest.mark.asyncio
    async def test_falls_back_to_row_scan(self, mock_session):
        mock_session.execute.side_effect = [
            ProgrammingError("SELECT", {}, Exception("function does not exist")),
            make_result(rows=[mapping_row(id="u1", created_at=ago(days=1))]),
            make_result(rows=[mapping_row(user_id="u1", amount=40, created_at=ago(hours=5))]),
            make_result(rows=[]),
        ]

        stats = await StatsService(mock_session).get_admin_dashboard_stats("1d", now=NOW)

        assert stats["source"] == "fallback"
        assert stats["period"] == "1d"
        assert stats["users"]["daily_active"] == 1
        assert stats["points"]["earned"] == 40
        mock_session.rollback.assert_awaited_once()


class TestUserStats:
    @pytest.mark.asyncio
    async def test_cached_between_calls(self, mock_session):
        mock_session.get.side_effect = session_get_for(make_user(points=70, login_streak=4))
        mock_session.execute.return_value = make_result(
            rows=[mapping_row(tx_type=TransactionType.EARN, source="roulette", amount=70)]
        )
        service = StatsService(mock_session)

        first = await service.get_user_stats(PLAYER_ID)
        second = await service.get_user_stats(PLAYER_ID)

        assert first is second
        assert first["balance"] == 70
        assert first["total_earned"] == 70
        assert first["login_streak"] == 4
        assert mock_session.execute.await_count == 1


class TestPerDomainSummaries:
    def test_game_activity(self):
        sessions = [
            {"game_id": "g-wheel", "user_id": "u1", "score": 50, "points_earned": 50, "duration_seconds": 30,
             "created_at": ago(hours=2)},
            {"game_id": "g-wheel", "user_id": "u1", "score": 10, "points_earned": 10, "duration_seconds": None,
             "created_at": ago(days=3)},
            {"game_id": "g-wheel", "user_id": "u2", "score": 0, "points_earned": 0, "duration_seconds": 60,
             "created_at": ago(days=40)},
            {"game_id": "g-slot", "user_id": "u2", "score": 5, "points_earned": 5, "duration_seconds": 4,
             "created_at": ago(hours=1)},
        ]

        wheel, slot = summarize_game_activity(sessions, {"g-wheel": "Forest Wheel", "g-slot": "Lucky Slots"}, NOW)

        assert wheel == {
            "game_id": "g-wheel",
            "game_name": "Forest Wheel",
            "total_plays": 3,
            "total_players": 2,
            "total_points_awarded": 60,
            "average_score": 20.0,
            "average_session_duration": 30.0,
            "daily_plays": 1,
            "weekly_plays": 2,
            "monthly_plays": 2,
        }
        assert slot["game_name"] == "Lucky Slots"

    def test_point_flow(self):
        transactions = [
            {"user_id": "u1", "username": "oak", "amount": 300, "created_at": ago(hours=3)},
            {"user_id": "u2", "username": "fern", "amount": 500, "created_at": ago(days=10)},
            {"user_id": "u1", "username": "oak", "amount": -100, "created_at": ago(hours=1)},
            {"user_id": "u1", "username": "oak", "amount": 250, "created_at": ago(days=5)},
        ]

        flow = summarize_point_flow(transactions, NOW)

        assert flow["total_points_distributed"] == 1050
        assert flow["total_points_spent"] == 100
        assert (
            flow["daily_points_distributed"],
            flow["weekly_points_distributed"],
            flow["monthly_points_distributed"],
        ) == (300, 550, 1050)
        assert flow["top_earners"] == [
            {"user_id": "u1", "username": "oak", "total_points": 550},
            {"user_id": "u2", "username": "fern", "total_points": 500},
        ]

    def test_quest_activity(self):
        user_quests = [
            {"quest_template_id": "q-games", "status": "completed", "completed_at": ago(hours=1),
             "rewards_claimed": True, "points_earned": 60},
            {"quest_template_id": "q-games", "status": "completed", "completed_at": ago(days=8),
             "rewards_claimed": False, "points_earned": 0},
            {"quest_template_id": "q-login", "status": "active", "completed_at": None,
             "rewards_claimed": False, "points_earned": 0},
            {"quest_template_id": "q-login", "status": "active", "completed_at": None,
             "rewards_claimed": False, "points_earned": 0},
        ]

        stats = summarize_quest_activity(user_quests, {"q-games": "Forest Games", "q-login": "Check In"}, NOW)

        assert stats == {
            "total_active_quests": 2,
            "total_completions": 2,
            "completion_rate": 50.0,
            "most_popular_quest": "Forest Games",
            "total_rewards_distributed": 60,
            "daily_completions": 1,
            "weekly_completions": 1,
            "monthly_completions": 2,
        }

    def test_quest_activity_without_assignments(self):
        stats = summarize_quest_activity([], {}, NOW)

        assert stats["completion_rate"] == 0.0
        assert stats["most_popular_quest"] == "N/A"

    def test_gacha_activity_reports_every_rarity(self):
        pulls = [
            {**pull, "gacha_machine_id": "m-forest", "pull_count": len(pull["items_received"])}
            for pull in PULLS
        ]

        stats = summarize_gacha_activity(pulls, {"m-forest": "Forest Capsule"}, NOW, rarities=["common", "rare", "mythical"])

        assert stats["total_pulls"] == 2
        assert stats["total_revenue"] == 1100
        assert stats["total_items_distributed"] == 12
        assert stats["most_popular_machine"] == "Forest Capsule"
        assert stats["rarity_distribution"] == {"common": 11, "rare": 1, "mythical": 0}
        assert (stats["daily_pulls"], stats["weekly_pulls"], stats["monthly_pulls"]) == (1, 2, 2)


class TestPerDomainStats:
    @pytest.mark.asyncio
    async def test_game_stats_joins_names(self, mock_session):
        mock_session.execute.side_effect = [
            make_result(rows=[
                mapping_row(game_id="g-wheel", user_id=PLAYER_ID, score=40, points_earned=40,
                            duration_seconds=20, created_at=ago(hours=1)),
            ]),
            make_result(rows=[("g-wheel", "Forest Wheel")]),
        ]

        [stats] = await StatsService(mock_session).get_game_stats(now=NOW)

        assert stats["game_name"] == "Forest Wheel"
        assert stats["daily_plays"] == 1

    @pytest.mark.asyncio
    async def test_gacha_stats_lists_all_rarities(self, mock_session):
        mock_session.execute.side_effect = [make_result(rows=[]), make_result(rows=[])]

        stats = await StatsService(mock_session).get_gacha_stats(now=NOW)

        assert stats["total_pulls"] == 0
        assert stats["most_popular_machine"] == "N/A"
        assert set(stats["rarity_distribution"]) == {"common", "uncommon", "rare", "epic", "legendary", "mythical"}
        assert sum(stats["rarity_distribution"].values()) == 0
