"""Bearer token authentication tests."""

from datetime import timedelta

import pytest

from factories import PLAYER_ID, session_get_for
from points_forest.utils.security import create_access_token, verify_access_token

RANK_URL = "/api/v1/users/me/rank"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_missing_token(client):
    response = await client.get(RANK_URL, headers={"X-Request-ID": "req-auth-1"})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "AUTH_REQUIRED"
    assert body["traceId"] == "req-auth-1"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_valid_token_resolves_profile(client, override_db, player):
    override_db.get.side_effect = session_get_for(player)

    response = await client.get(RANK_URL, headers=bearer(create_access_token(PLAYER_ID)))

    assert response.status_code == 200
    assert response.json()["level"] == 2
    assert response.json()["exp_to_next_level"] == 150


@pytest.mark.asyncio
async def test_expired_token(client):
    token = create_access_token(PLAYER_ID, expires_delta=timedelta(minutes=-5))

    response = await client.get(RANK_URL, headers=bearer(token))

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_EXPIRED"


@pytest.mark.asyncio
async def test_garbage_token(client):
    response = await client.get(RANK_URL, headers=bearer("not-a-jwt"))

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_INVALID_TOKEN"


@pytest.mark.asyncio
async def test_profile_missing(client):
    response = await client.get(RANK_URL, headers=bearer(create_access_token("unknown-user")))

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_USER_NOT_FOUND"


def test_token_round_trip_keeps_subject():
    payload = verify_access_token(create_access_token(PLAYER_ID, extra_claims={"role": "authenticated"}))

    assert payload["sub"] == PLAYER_ID
    assert payload["role"] == "authenticated"


def test_empty_token():
    assert verify_access_token("") is None
