"""Reward error taxonomy.

Every domain failure is a ``RewardError`` carrying a stable code, a message
suitable for the player and a severity. The API layer renders it as the
procedure contract ``{"success": false, "error": ..., "code": ...}``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes returned to clients."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    FEATURE_UNAVAILABLE = "FEATURE_UNAVAILABLE"

    # User errors
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_BANNED = "USER_BANNED"
    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"

    # Points ledger
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    LOCK_NOT_ACQUIRED = "LOCK_NOT_ACQUIRED"

    # Limits
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
    LIMIT_STORE_UNAVAILABLE = "LIMIT_STORE_UNAVAILABLE"

    # Games & gacha
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    GAME_INACTIVE = "GAME_INACTIVE"
    INVALID_SCORE = "INVALID_SCORE"
    MACHINE_NOT_FOUND = "MACHINE_NOT_FOUND"
    INVALID_PULL_COUNT = "INVALID_PULL_COUNT"
    PULL_NOT_FOUND = "PULL_NOT_FOUND"
    EMPTY_OUTCOMES = "EMPTY_OUTCOMES"

    # Daily bonus & quests
    ALREADY_CLAIMED_TODAY = "ALREADY_CLAIMED_TODAY"
    QUEST_NOT_FOUND = "QUEST_NOT_FOUND"
    QUEST_NOT_COMPLETED = "QUEST_NOT_COMPLETED"
    REWARD_ALREADY_CLAIMED = "REWARD_ALREADY_CLAIMED"

    # Springs
    SPRING_NOT_FOUND = "SPRING_NOT_FOUND"
    LEVEL_REQUIRED = "LEVEL_REQUIRED"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


ERROR_HTTP_STATUS: dict[str, int] = {
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.FEATURE_UNAVAILABLE: 503,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.USER_BANNED: 403,
    ErrorCode.PREMIUM_REQUIRED: 403,
    ErrorCode.INSUFFICIENT_POINTS: 402,
    ErrorCode.INVALID_AMOUNT: 400,
    ErrorCode.TRANSACTION_FAILED: 500,
    ErrorCode.LOCK_NOT_ACQUIRED: 409,
    ErrorCode.DAILY_LIMIT_EXCEEDED: 429,
    ErrorCode.LIMIT_STORE_UNAVAILABLE: 503,
    ErrorCode.GAME_NOT_FOUND: 404,
    ErrorCode.GAME_INACTIVE: 409,
    ErrorCode.INVALID_SCORE: 400,
    ErrorCode.MACHINE_NOT_FOUND: 404,
    ErrorCode.INVALID_PULL_COUNT: 400,
    ErrorCode.PULL_NOT_FOUND: 404,
    ErrorCode.EMPTY_OUTCOMES: 500,
    ErrorCode.ALREADY_CLAIMED_TODAY: 409,
    ErrorCode.QUEST_NOT_FOUND: 404,
    ErrorCode.QUEST_NOT_COMPLETED: 409,
    ErrorCode.REWARD_ALREADY_CLAIMED: 409,
    ErrorCode.SPRING_NOT_FOUND: 404,
    ErrorCode.LEVEL_REQUIRED: 403,
}


class RewardError(Exception):
    """Base exception for reward domain errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-facing error message
        details: Additional error details
        severity: How loudly the client should surface it
    """

    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        severity: ErrorSeverity | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        if severity is not None:
            self.severity = severity
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return ERROR_HTTP_STATUS.get(self.code, 400)

    def to_dict(self, trace_id: str | None = None) -> dict[str, Any]:
        """Procedure-style failure payload."""
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "severity": self.severity.value,
            "details": self.details,
            "traceId": trace_id,
        }


class UserNotFoundError(RewardError):
    def __init__(self, user_id: str):
        super().__init__(
            ErrorCode.USER_NOT_FOUND,
            "User not found",
            {"user_id": user_id},
            ErrorSeverity.HIGH,
        )


class UserBannedError(RewardError):
    severity = ErrorSeverity.HIGH

    def __init__(self, user_id: str):
        super().__init__(
            ErrorCode.USER_BANNED,
            "This account cannot earn or spend points",
            {"user_id": user_id},
        )


class PremiumRequiredError(RewardError):
    def __init__(self, feature: str):
        super().__init__(
            ErrorCode.PREMIUM_REQUIRED,
            "A premium membership is required",
            {"feature": feature},
        )


class PermissionDeniedError(RewardError):
    severity = ErrorSeverity.HIGH

    def __init__(self, message: str = "You do not have permission for this action"):
        super().__init__(ErrorCode.PERMISSION_DENIED, message)


class InsufficientPointsError(RewardError):
    """Raised when a debit would take the balance below zero."""

    def __init__(self, required: int, available: int):
        super().__init__(
            ErrorCode.INSUFFICIENT_POINTS,
            f"Not enough points: required {required}, available {available}",
            {"required": required, "available": available},
        )


class InvalidAmountError(RewardError):
    def __init__(self, message: str = "Amount must be a non-zero integer"):
        super().__init__(ErrorCode.INVALID_AMOUNT, message, severity=ErrorSeverity.LOW)


class LockNotAcquiredError(RewardError):
    def __init__(self, resource: str):
        super().__init__(
            ErrorCode.LOCK_NOT_ACQUIRED,
            "Another request is being processed, please retry",
            {"resource": resource},
            ErrorSeverity.LOW,
        )


class DailyLimitExceededError(RewardError):
    """Raised when an action would exceed its per-day allowance."""

    severity = ErrorSeverity.LOW

    def __init__(
        self,
        action: str,
        limit: int,
        used: int,
        next_reset: datetime | None = None,
    ):
        super().__init__(
            ErrorCode.DAILY_LIMIT_EXCEEDED,
            "Daily limit reached, come back tomorrow",
            {
                "action": action,
                "limit": limit,
                "used": used,
                "next_reset": next_reset.isoformat() if next_reset else None,
            },
        )


class LimitStoreUnavailableError(RewardError):
    severity = ErrorSeverity.HIGH

    def __init__(self, action: str):
        super().__init__(
            ErrorCode.LIMIT_STORE_UNAVAILABLE,
            "Service temporarily unavailable, please try again shortly",
            {"action": action},
        )


class GameNotFoundError(RewardError):
    def __init__(self, game_ref: str):
        super().__init__(
            ErrorCode.GAME_NOT_FOUND,
            "Game not found",
            {"game": game_ref},
        )


class GameInactiveError(RewardError):
    def __init__(self, game_ref: str):
        super().__init__(
            ErrorCode.GAME_INACTIVE,
            "This game is not available right now",
            {"game": game_ref},
        )


class InvalidScoreError(RewardError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.INVALID_SCORE, message, severity=ErrorSeverity.LOW)


class MachineNotFoundError(RewardError):
    def __init__(self, slug: str):
        super().__init__(
            ErrorCode.MACHINE_NOT_FOUND,
            "Gacha machine not found",
            {"slug": slug},
        )


class InvalidPullCountError(RewardError):
    def __init__(self, pull_count: int, reason: str):
        super().__init__(
            ErrorCode.INVALID_PULL_COUNT,
            reason,
            {"pull_count": pull_count},
            ErrorSeverity.LOW,
        )


class PullNotFoundError(RewardError):
    def __init__(self, pull_id: str):
        super().__init__(ErrorCode.PULL_NOT_FOUND, "Pull not found", {"pull_id": pull_id})


class EmptyOutcomesError(RewardError):
    """Raised when a weighted draw is attempted over nothing."""

    severity = ErrorSeverity.HIGH

    def __init__(self, message: str = "Cannot select from an empty outcome list"):
        super().__init__(ErrorCode.EMPTY_OUTCOMES, message)


class AlreadyClaimedTodayError(RewardError):
    severity = ErrorSeverity.LOW

    def __init__(self, next_claim_at: datetime | None = None):
        super().__init__(
            ErrorCode.ALREADY_CLAIMED_TODAY,
            "Daily bonus already claimed today",
            {"next_claim_at": next_claim_at.isoformat() if next_claim_at else None},
        )


class QuestNotFoundError(RewardError):
    def __init__(self, quest_id: str):
        super().__init__(ErrorCode.QUEST_NOT_FOUND, "Quest not found", {"quest_id": quest_id})


class QuestNotCompletedError(RewardError):
    def __init__(self, quest_id: str):
        super().__init__(
            ErrorCode.QUEST_NOT_COMPLETED,
            "Quest is not completed yet",
            {"quest_id": quest_id},
            ErrorSeverity.LOW,
        )


class RewardAlreadyClaimedError(RewardError):
    def __init__(self, quest_id: str):
        super().__init__(
            ErrorCode.REWARD_ALREADY_CLAIMED,
            "Reward already claimed",
            {"quest_id": quest_id},
            ErrorSeverity.LOW,
        )


class InvalidInputError(RewardError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.INVALID_INPUT, message, details, ErrorSeverity.LOW)


class SpringNotFoundError(RewardError):
    def __init__(self, slug: str):
        super().__init__(ErrorCode.SPRING_NOT_FOUND, "Spring not found", {"slug": slug})


class LevelRequiredError(RewardError):
    severity = ErrorSeverity.LOW

    def __init__(self, resource: str, required: int, current: int):
        super().__init__(
            ErrorCode.LEVEL_REQUIRED,
            f"Level {required} is required",
            {"resource": resource, "required_level": required, "current_level": current},
        )
