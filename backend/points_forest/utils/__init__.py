"""Utility modules."""

from points_forest.utils.db import get_db, get_db_session, engine
from points_forest.utils.redis_client import get_redis

__all__ = [
    "get_db",
    "get_db_session",
    "engine",
    "get_redis",
]
