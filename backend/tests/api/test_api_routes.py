"""Routing tests for the player endpoints and health checks."""

import pytest

from factories import make_result
from points_forest.models.game import Game
from points_forest.utils.errors import (
    AlreadyClaimedTodayError,
    LevelRequiredError,
    QuestNotCompletedError,
)
from points_forest.utils.json_utils import json_dumps


@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_root(client):
    body = (await client.get("/")).json()

    assert body["name"] == "Points Forest API"
    assert body["health"] == "/health"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    response = await client.get("/health/live")

    assert len(response.headers["X-Request-ID"]) == 36


@pytest.mark.asyncio
async def test_unknown_route_uses_failure_envelope(client):
    response = await client.get("/api/v1/no-such-thing")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "HTTP_ERROR"
    assert body["traceId"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_wrong_method_uses_failure_envelope(client):
    response = await client.post("/health/live")

    assert response.status_code == 405
    assert response.json()["code"] == "HTTP_ERROR"


@pytest.mark.asyncio
async def test_balance(client, login_as, player, patch_redis, mock_redis):
    login_as(player)
    mock_redis.get.return_value = "480"

    response = await client.get("/api/v1/points/balance")

    assert response.status_code == 200
    assert response.json() == {"points": 480, "level": 2, "experience": 250}


@pytest.mark.asyncio
async def test_transactions_reject_unknown_type(client, login_as, player):
    login_as(player)

    response = await client.get("/api/v1/points/transactions", params={"tx_type": "gift"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_games(client, login_as, player, override_db):
    login_as(player)
    override_db.execute.return_value = make_result(
        rows=[
            Game(
                id="game-wheel",
                name="Forest Wheel",
                slug="forest-wheel",
                type="roulette",
                config={},
                daily_limit=3,
                min_points=0,
                max_points=1000,
                is_active=True,
                requires_premium=False,
                sort_order=0,
            )
        ]
    )

    response = await client.get("/api/v1/games")

    assert response.status_code == 200
    [game] = response.json()
    assert game["slug"] == "forest-wheel"
    assert game["daily_limit"] == 3


@pytest.mark.asyncio
async def test_game_session_rejects_negative_score(client, login_as, player):
    login_as(player)

    response = await client.post(
        "/api/v1/games/game-wheel/sessions",
        json={"score": -1, "points_earned": 10},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_daily_bonus_claimed_twice(client, login_as, player, monkeypatch):
    class AlreadyClaimed:
        def __init__(self, session):
            pass

        async def process_daily_bonus(self, user_id, now=None):
            raise AlreadyClaimedTodayError()

    login_as(player)
    monkeypatch.setattr("points_forest.api.daily_bonus.DailyBonusService", AlreadyClaimed)

    response = await client.post("/api/v1/daily-bonus")

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "ALREADY_CLAIMED_TODAY"
    assert body["severity"] == "low"


@pytest.mark.asyncio
async def test_quest_claim_not_completed(client, login_as, player, monkeypatch):
    class NotDone:
        def __init__(self, session):
            pass

        async def claim_quest_reward(self, user_id, quest_id):
            raise QuestNotCompletedError(quest_id)

    login_as(player)
    monkeypatch.setattr("points_forest.api.quests.QuestService", NotDone)

    response = await client.post("/api/v1/quests/quest-1/claim")

    assert response.status_code == 409
    assert response.json()["code"] == "QUEST_NOT_COMPLETED"


@pytest.mark.asyncio
async def test_spring_visit(client, login_as, player, monkeypatch):
    class Blessed:
        def __init__(self, session):
            pass

        async def visit_spring(self, user_id, slug, now=None):
            return {
                "success": True,
                "visit_id": "visit-1",
                "spring_name": "Clear Spring",
                "tier": "rare",
                "points_earned": 40,
                "message": "A rare blessing ripples up from the spring.",
                "balance": 520,
                "visits_today": 1,
                "visits_remaining": 2,
                "next_reset": "2024-03-06T00:00:00+00:00",
                "quests_completed": 0,
            }

    login_as(player)
    monkeypatch.setattr("points_forest.api.springs.SpringService", Blessed)

    response = await client.post("/api/v1/springs/clear-spring/visit")

    assert response.status_code == 200
    body = response.json()
    assert (body["tier"], body["points_earned"], body["balance"]) == ("rare", 40, 520)


@pytest.mark.asyncio
async def test_spring_visit_below_level(client, login_as, player, monkeypatch):
    class Gated:
        def __init__(self, session):
            pass

        async def visit_spring(self, user_id, slug, now=None):
            raise LevelRequiredError(f"spring:{slug}", 5, 2)

    login_as(player)
    monkeypatch.setattr("points_forest.api.springs.SpringService", Gated)

    response = await client.post("/api/v1/springs/moss-spring/visit")

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "LEVEL_REQUIRED"
    assert body["details"]["required_level"] == 5


@pytest.mark.asyncio
async def test_leaderboard_listing(client, login_as, player):
    login_as(player)

    response = await client.get("/api/v1/leaderboards")

    assert response.status_code == 200
    assert [b["type"] for b in response.json()] == [
        "total_points",
        "weekly_points",
        "monthly_games",
        "login_streak",
    ]


@pytest.mark.asyncio
async def test_unknown_leaderboard_rejected(client, login_as, player):
    login_as(player)

    response = await client.get("/api/v1/leaderboards/richest_squirrel")

    assert response.status_code == 422


class TestSettings:
    @pytest.mark.asyncio
    async def test_get_defaults(self, client, login_as, player, patch_redis):
        login_as(player)

        response = await client.get("/api/v1/users/me/settings")

        assert response.status_code == 200
        assert response.json()["theme"] == "forest"

    @pytest.mark.asyncio
    async def test_patch_single_value(self, client, login_as, player, patch_redis, mock_redis):
        login_as(player)
        mock_redis.get.return_value = json_dumps({"theme": "sunset"})

        response = await client.patch(
            "/api/v1/users/me/settings",
            json={"path": "notifications.weekly_report", "value": True},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["theme"] == "sunset"
        assert body["notifications"]["weekly_report"] is True

    @pytest.mark.asyncio
    async def test_patch_unknown_path(self, client, login_as, player, patch_redis):
        login_as(player)

        response = await client.patch("/api/v1/users/me/settings", json={"path": "nope", "value": 1})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_readiness_reports_unhealthy_dependency(client, monkeypatch):
    async def healthy():
        return "healthy"

    async def missing():
        return "not initialized"

    monkeypatch.setattr("points_forest.api.health.check_database", healthy)
    monkeypatch.setattr("points_forest.api.health.check_redis", missing)

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "not ready", "database": "healthy", "redis": "not initialized"}


@pytest.mark.asyncio
async def test_health_degraded_without_redis(client, monkeypatch):
    async def healthy():
        return "healthy"

    monkeypatch.setattr("points_forest.api.health.check_database", healthy)

    body = (await client.get("/health")).json()

    assert body["status"] == "degraded"
    assert body["services"] == {"database": "healthy", "redis": "not initialized"}
    assert body["reward_timezone"] == "UTC"
    assert body["daily_limit_fail_open"] is False
