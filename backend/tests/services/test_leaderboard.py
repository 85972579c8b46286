"""Leaderboard ranking tests."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from factories import PLAYER_ID, make_result, mapping_row
from points_forest.services.leaderboard import (
    LeaderboardService,
    LeaderboardType,
    period_start,
    rank_entries,
)

NOW = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


def board_rows():
    return [
        mapping_row(user_id="u-oak", username="oak", display_name="Old Oak", value=900),
        mapping_row(user_id=PLAYER_ID, username="forest_player", display_name=None, value=480),
        mapping_row(user_id="u-fern", username="fern", display_name="Fern", value=120),
    ]


def test_rank_entries_numbers_rows_and_flags_player():
    entries = rank_entries([r._mapping for r in board_rows()], PLAYER_ID)

    assert [e["rank"] for e in entries] == [1, 2, 3]
    assert entries[1] == {
        "rank": 2,
        "user_id": PLAYER_ID,
        "username": "forest_player",
        "display_name": "forest_player",
        "value": 480,
        "is_current_user": True,
    }
    assert not entries[0]["is_current_user"]


def test_rank_entries_treats_missing_value_as_zero():
    [entry] = rank_entries([{"user_id": "u1", "username": "moss", "value": None}])

    assert entry["value"] == 0


@pytest.mark.parametrize(
    "board,expected",
    [
        (LeaderboardType.TOTAL_POINTS, None),
        (LeaderboardType.LOGIN_STREAK, None),
        (LeaderboardType.WEEKLY_POINTS, datetime(2024, 3, 3, tzinfo=timezone.utc)),
        (LeaderboardType.MONTHLY_GAMES, datetime(2024, 3, 1, tzinfo=timezone.utc)),
    ],
)
def test_period_start(board, expected):
    assert period_start(board, NOW) == expected


class TestGetLeaderboard:
    @pytest.mark.asyncio
    async def test_reports_my_rank(self, mock_session):
        mock_session.execute.return_value = make_result(rows=board_rows())

        board = await LeaderboardService(mock_session).get_leaderboard(
            LeaderboardType.TOTAL_POINTS, PLAYER_ID, now=NOW
        )

        assert board["type"] == "total_points"
        assert board["period_start"] is None
        assert board["my_rank"] == 2
        assert [e["username"] for e in board["entries"]] == ["oak", "forest_player", "fern"]

    @pytest.mark.asyncio
    async def test_player_off_the_board(self, mock_session):
        mock_session.execute.return_value = make_result(rows=board_rows()[:1])

        board = await LeaderboardService(mock_session).get_leaderboard(
            LeaderboardType.LOGIN_STREAK, PLAYER_ID, now=NOW
        )

        assert board["my_rank"] is None

    @pytest.mark.asyncio
    async def test_rows_cached_between_players(self, mock_session):
        mock_session.execute.return_value = make_result(rows=board_rows())
        service = LeaderboardService(mock_session)

        await service.get_leaderboard(LeaderboardType.WEEKLY_POINTS, PLAYER_ID, now=NOW)
        other = await service.get_leaderboard(LeaderboardType.WEEKLY_POINTS, "u-oak", now=NOW)

        assert other["my_rank"] == 1
        assert other["period_start"] == "2024-03-03T00:00:00+00:00"
        mock_session.execute.assert_awaited_once()


def compiled(board: LeaderboardType) -> str:
    query = LeaderboardService(None)._board_query(board, period_start(board, NOW))
    return str(query.compile(dialect=postgresql.dialect()))


def test_weekly_board_sums_earnings_since_sunday():
    sql = compiled(LeaderboardType.WEEKLY_POINTS)

    assert "sum(point_transactions.amount)" in sql
    assert "point_transactions.type" in sql
    assert "GROUP BY users.id" in sql
    assert "users.is_banned IS false" in sql


def test_monthly_board_counts_sessions():
    sql = compiled(LeaderboardType.MONTHLY_GAMES)

    assert "count(game_sessions.id)" in sql
    assert "game_sessions.created_at >=" in sql
    assert "LIMIT" in sql
