"""Admin endpoint tests."""

from datetime import datetime, timezone

import pytest

from factories import ADMIN_ID, PLAYER_ID, make_result
from points_forest.models.audit import AuditLog
from points_forest.models.points import PointTransaction, TransactionType
from points_forest.utils.errors import InsufficientPointsError

ADJUST_URL = "/api/v1/admin/points/adjust"


class FakePointsService:
    calls: list[tuple] = []
    error: Exception | None = None

    def __init__(self, session):
        self.session = session

    async def admin_adjust(self, user_id, amount, reason, admin_id):
        FakePointsService.calls.append((user_id, amount, reason, admin_id))
        if self.error:
            raise self.error
        return PointTransaction(
            id="tx-1",
            user_id=user_id,
            tx_type=TransactionType.ADMIN,
            source="admin",
            amount=amount,
            balance_before=100,
            balance_after=100 + amount,
            integrity_hash="0" * 64,
        )


@pytest.fixture
def fake_points(monkeypatch):
    FakePointsService.calls = []
    FakePointsService.error = None
    monkeypatch.setattr("points_forest.api.admin.PointsService", FakePointsService)
    return FakePointsService


@pytest.mark.asyncio
async def test_player_cannot_adjust(client, login_as, player, fake_points):
    login_as(player)

    response = await client.post(ADJUST_URL, json={"user_id": PLAYER_ID, "amount": 50, "reason": "gift"})

    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"
    assert fake_points.calls == []


@pytest.mark.asyncio
async def test_admin_adjusts_points(client, login_as, admin, fake_points):
    login_as(admin)

    response = await client.post(
        ADJUST_URL,
        json={"user_id": PLAYER_ID, "amount": -30, "reason": "  duplicate reward  "},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "transaction_id": "tx-1",
        "user_id": PLAYER_ID,
        "amount": -30,
        "balance_before": 100,
        "balance_after": 70,
    }
    assert fake_points.calls == [(PLAYER_ID, -30, "duplicate reward", ADMIN_ID)]


@pytest.mark.parametrize(
    "body",
    [
        {"user_id": PLAYER_ID, "amount": 0, "reason": "nothing"},
        {"user_id": PLAYER_ID, "amount": 10, "reason": "   "},
        {"user_id": PLAYER_ID, "amount": 10},
    ],
)
@pytest.mark.asyncio
async def test_adjust_validation(client, login_as, admin, fake_points, body):
    login_as(admin)

    response = await client.post(ADJUST_URL, json=body)

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_INPUT"
    assert fake_points.calls == []


@pytest.mark.asyncio
async def test_deduction_beyond_balance(client, login_as, admin, fake_points):
    login_as(admin)
    fake_points.error = InsufficientPointsError(required=500, available=100)

    response = await client.post(ADJUST_URL, json={"user_id": PLAYER_ID, "amount": -500, "reason": "chargeback"})

    assert response.status_code == 402


@pytest.mark.asyncio
async def test_dashboard_range_validated(client, login_as, admin):
    login_as(admin)

    response = await client.get("/api/v1/admin/dashboard/stats", params={"range": "2w"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_audit_logs(client, login_as, admin, override_db):
    login_as(admin)
    override_db.execute.return_value = make_result(
        rows=[
            AuditLog(
                id="audit-1",
                actor_user_id=ADMIN_ID,
                action="admin.adjust_points",
                context={"amount": -30},
                created_at=datetime(2024, 3, 5, tzinfo=timezone.utc),
            )
        ]
    )

    response = await client.get("/api/v1/admin/audit-logs", params={"action": "admin.adjust_points"})

    assert response.status_code == 200
    [entry] = response.json()
    assert entry["id"] == "audit-1"
    assert entry["context"] == {"amount": -30}


@pytest.mark.asyncio
async def test_live_audit_empty_without_redis(client, login_as, admin):
    login_as(admin)

    response = await client.get("/api/v1/admin/audit-logs/live")

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_player_cannot_read_domain_stats(client, login_as, player):
    login_as(player)

    response = await client.get("/api/v1/admin/stats/points")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_quest_stats(client, login_as, admin, override_db):
    login_as(admin)
    override_db.execute.side_effect = [make_result(rows=[]), make_result(rows=[])]

    response = await client.get("/api/v1/admin/stats/quests")

    assert response.status_code == 200
    body = response.json()
    assert body["total_completions"] == 0
    assert body["most_popular_quest"] == "N/A"
