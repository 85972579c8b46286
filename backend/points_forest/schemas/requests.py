"""API request schemas."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class GachaPullRequest(BaseModel):
    """1x or 10x pull."""

    pull_count: int = Field(default=1, description="1 or 10")


class GameSessionRequest(BaseModel):
    """Client-scored game result."""

    score: int = Field(..., ge=0)
    points_earned: int = Field(..., ge=0)
    duration_seconds: int | None = Field(None, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class NumberGuessRequest(BaseModel):
    guess: int = Field(..., ge=1, le=100)


class AdminAdjustPointsRequest(BaseModel):
    """Manual balance correction."""

    user_id: str
    amount: int = Field(..., description="Signed amount (positive = credit)")
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Amount cannot be zero")
        return v

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Reason is required")
        return v.strip()


class SettingUpdateRequest(BaseModel):
    """Set a single value by dotted path, e.g. ``notifications.email``."""

    path: str = Field(..., min_length=1, max_length=100)
    value: Any
