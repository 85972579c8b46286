"""Pydantic schemas for API requests and responses."""

from points_forest.schemas.common import BaseSchema, ErrorResponse

__all__ = [
    "BaseSchema",
    "ErrorResponse",
]
