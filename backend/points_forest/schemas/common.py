"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorResponse(BaseModel):
    """Failure payload returned by every procedure."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Error code (e.g., DAILY_LIMIT_EXCEEDED)")
    severity: str = "medium"
    details: dict[str, Any] = Field(default_factory=dict)
    trace_id: str | None = Field(None, alias="traceId")
