"""Fixtures for API tests.

The app runs in-process over ASGI. The database session is the shared
``mock_session`` and the current user is injected directly, so no database
or Redis is needed.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from factories import ADMIN_ID, make_user
from points_forest.api.deps import get_current_user
from points_forest.main import app
from points_forest.utils.db import get_db


@pytest.fixture
def player():
    return make_user(points=500, experience=250, level=2)


@pytest.fixture
def admin():
    return make_user(id=ADMIN_ID, username="forest_ranger", is_admin=True)


@pytest.fixture
def override_db(mock_session):
    async def _get_db():
        yield mock_session

    app.dependency_overrides[get_db] = _get_db
    yield mock_session
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def login_as(override_db):
    """Authenticate requests as the given user."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)


@pytest_asyncio.fixture
async def client(override_db) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
