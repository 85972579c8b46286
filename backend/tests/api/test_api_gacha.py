"""Gacha endpoint tests.

Services are replaced with fakes; these tests cover routing, the response
shapes and the failure payload.
"""

from datetime import datetime, timezone

import pytest

from factories import PLAYER_ID
from points_forest.engine.reveal import RevealSequencer, RevealTiming
from points_forest.models.gacha import GachaPull
from points_forest.utils.errors import DailyLimitExceededError, InsufficientPointsError, PullNotFoundError
from points_forest.utils.json_utils import json_loads

ACORN = {
    "item_id": "item-acorn",
    "name": "Golden Acorn",
    "rarity": "common",
    "category": "badge",
    "point_value": 5,
    "icon_emoji": "🌰",
    "rarity_color": "#94a3b8",
    "is_jackpot": False,
}
OWL = {**ACORN, "item_id": "item-owl", "name": "Night Owl", "rarity": "epic", "point_value": 40}


class FakeGachaService:
    error: Exception | None = None
    calls: list[tuple] = []

    def __init__(self, session, rng=None):
        self.session = session

    async def execute_pull(self, user_id, slug, pull_count=1, now=None):
        FakeGachaService.calls.append((user_id, slug, pull_count))
        if self.error:
            raise self.error
        return {
            "success": True,
            "pull_id": "pull-1",
            "items_received": [ACORN],
            "total_value": 5,
            "cost_paid": 100,
            "remaining_balance": 20,
            "pulls_today": 1,
            "best_rarity": "common",
        }

    async def get_pull(self, user_id, pull_id):
        if self.error:
            raise self.error
        return GachaPull(
            id=pull_id,
            user_id=user_id,
            gacha_machine_id="machine-forest",
            cost_paid=200,
            currency_type="points",
            items_received=[ACORN, OWL],
            total_value=45,
            pull_count=2,
            created_at=datetime(2024, 3, 5, tzinfo=timezone.utc),
        )


@pytest.fixture
def fake_gacha(monkeypatch, login_as, player):
    login_as(player)
    FakeGachaService.error = None
    FakeGachaService.calls = []
    monkeypatch.setattr("points_forest.api.gacha.GachaService", FakeGachaService)
    return FakeGachaService


@pytest.mark.asyncio
async def test_pull(client, fake_gacha):
    response = await client.post("/api/v1/gacha/forest-capsule/pull", json={"pull_count": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["remaining_balance"] == 20
    assert body["pulls_today"] == 1
    assert body["items_received"][0]["name"] == "Golden Acorn"
    assert fake_gacha.calls == [(PLAYER_ID, "forest-capsule", 1)]


@pytest.mark.asyncio
async def test_pull_count_defaults_to_single(client, fake_gacha):
    await client.post("/api/v1/gacha/forest-capsule/pull", json={})

    assert fake_gacha.calls == [(PLAYER_ID, "forest-capsule", 1)]


@pytest.mark.asyncio
async def test_insufficient_points_payload(client, fake_gacha):
    fake_gacha.error = InsufficientPointsError(required=100, available=20)

    response = await client.post(
        "/api/v1/gacha/forest-capsule/pull",
        json={"pull_count": 1},
        headers={"X-Request-ID": "req-gacha-1"},
    )

    assert response.status_code == 402
    assert response.json() == {
        "success": False,
        "error": "Not enough points: required 100, available 20",
        "code": "INSUFFICIENT_POINTS",
        "severity": "medium",
        "details": {"required": 100, "available": 20},
        "traceId": "req-gacha-1",
    }
    assert response.headers["X-Request-ID"] == "req-gacha-1"


@pytest.mark.asyncio
async def test_daily_limit_payload(client, fake_gacha):
    fake_gacha.error = DailyLimitExceededError(
        "gacha:machine-forest",
        limit=3,
        used=3,
        next_reset=datetime(2024, 3, 6, tzinfo=timezone.utc),
    )

    response = await client.post("/api/v1/gacha/forest-capsule/pull", json={"pull_count": 1})

    assert response.status_code == 429
    body = response.json()
    assert body["code"] == "DAILY_LIMIT_EXCEEDED"
    assert body["details"]["next_reset"] == "2024-03-06T00:00:00+00:00"


@pytest.mark.asyncio
async def test_pull_validation_error(client, fake_gacha):
    response = await client.post("/api/v1/gacha/forest-capsule/pull", json={"pull_count": "many"})

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "INVALID_INPUT"
    assert body["details"]["errors"][0]["loc"] == ["body", "pull_count"]
    assert fake_gacha.calls == []


@pytest.mark.asyncio
async def test_reveal_stream(client, fake_gacha, monkeypatch):
    monkeypatch.setattr(
        "points_forest.api.gacha.RevealSequencer",
        lambda items: RevealSequencer(items, RevealTiming(0, 0, 0)),
    )

    response = await client.get("/api/v1/gacha/pulls/pull-1/reveal")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")

    events = [json_loads(line) for line in response.text.splitlines() if line]
    assert [e["item"]["name"] for e in events if e["type"] == "item"] == ["Golden Acorn", "Night Owl"]

    summaries = [e for e in events if e.get("state") == "summary"]
    assert len(summaries) == 1
    assert summaries[0] is events[-1]
    assert summaries[0]["summary"] == {
        "items_count": 2,
        "total_value": 45,
        "cost_paid": 200,
        "best_rarity": "epic",
    }


@pytest.mark.asyncio
async def test_reveal_unknown_pull(client, fake_gacha):
    fake_gacha.error = PullNotFoundError("pull-x")

    response = await client.get("/api/v1/gacha/pulls/pull-x/reveal")

    assert response.status_code == 404
    assert response.json()["code"] == "PULL_NOT_FOUND"
