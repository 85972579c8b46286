"""JSON utilities using orjson.

Usage:
    from points_forest.utils.json_utils import json_dumps, json_loads, ORJSONResponse

    data = json_loads('{"key": "value"}')
    json_str = json_dumps({"key": "value"})

    return ORJSONResponse(content={"success": True})
"""

from dataclasses import asdict, is_dataclass
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

import orjson
from fastapi.responses import JSONResponse

_OPTIONS = orjson.OPT_UTC_Z | orjson.OPT_NON_STR_KEYS


def _default_serializer(obj: Any) -> Any:
    """Custom serializer for types not natively supported by orjson."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return obj.decode("utf-8")
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_dumps(data: Any, *, pretty: bool = False, sort_keys: bool = False) -> str:
    """Serialize data to a JSON string.

    Args:
        data: Data to serialize
        pretty: If True, format with indentation
        sort_keys: If True, emit object keys in sorted order
    """
    options = _OPTIONS
    if pretty:
        options |= orjson.OPT_INDENT_2
    if sort_keys:
        options |= orjson.OPT_SORT_KEYS

    return orjson.dumps(data, default=_default_serializer, option=options).decode("utf-8")


def json_dumps_bytes(data: Any) -> bytes:
    """Serialize data to JSON bytes (used for NDJSON streaming)."""
    return orjson.dumps(data, default=_default_serializer, option=_OPTIONS)


def json_loads(data: str | bytes) -> Any:
    """Deserialize JSON string/bytes to Python object."""
    return orjson.loads(data)


class ORJSONResponse(JSONResponse):
    """FastAPI response class using orjson for serialization."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=_default_serializer, option=_OPTIONS)
