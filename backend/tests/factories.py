"""Builders for model instances and SQLAlchemy result stand-ins."""

from unittest.mock import MagicMock

from points_forest.models.user import User

PLAYER_ID = "3f1c2a9e-0000-4000-8000-000000000001"
ADMIN_ID = "3f1c2a9e-0000-4000-8000-0000000000ad"


def make_user(**overrides) -> User:
    fields = {
        "id": PLAYER_ID,
        "username": "forest_player",
        "points": 0,
        "level": 1,
        "experience": 0,
        "login_streak": 0,
        "is_premium": False,
        "is_banned": False,
        "is_admin": False,
    }
    fields.update(overrides)
    return User(**fields)


def make_result(scalar=None, rows=(), first=None, count=0):
    """Stand-in for a SQLAlchemy ``Result``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = count
    result.scalars.return_value.all.return_value = list(rows)
    result.first.return_value = first
    result.all.return_value = list(rows)
    return result


def mapping_row(**fields):
    """Row exposing ``_mapping`` like a SQLAlchemy ``Row``."""
    row = MagicMock()
    row._mapping = fields
    return row


def session_get_for(*objects):
    """``session.get`` side effect resolving ``(model, id)`` to test objects."""
    by_key = {(type(obj), obj.id): obj for obj in objects}

    async def _get(model, ident, **kwargs):
        return by_key.get((model, ident))

    return _get


def identity_map_get(held, **committed):
    """``session.get`` side effect for an object already in the identity map.

    The held instance keeps its loaded values unless the lookup asks for
    ``populate_existing``, in which case the committed row values win.
    """

    async def _get(model, ident, **kwargs):
        if (model, ident) != (type(held), held.id):
            return None
        if kwargs.get("populate_existing"):
            for field, value in committed.items():
                setattr(held, field, value)
        return held

    return _get
