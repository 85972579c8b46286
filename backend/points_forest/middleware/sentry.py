"""Sentry error tracking.

Only high-severity reward errors are reported; expected rejections such as
daily limits or insufficient points stay out of Sentry. Ledger failures are
captured with their own tags so they can be alerted on separately.
"""

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from points_forest.utils.errors import ErrorSeverity, RewardError


def init_sentry(
    dsn: str | None = None,
    environment: str = "development",
    release: str | None = None,
    traces_sample_rate: float = 0.1,
    profiles_sample_rate: float = 0.1,
) -> bool:
    """Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN; nothing is initialised without one
        environment: Environment name (development, staging, production)
        release: Release version string
        traces_sample_rate: Percentage of transactions to trace (0.0 to 1.0)
        profiles_sample_rate: Percentage of transactions to profile (0.0 to 1.0)

    Returns:
        True if Sentry was initialized, False otherwise
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            RedisIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        profiles_sample_rate=profiles_sample_rate,
        send_default_pii=False,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
    )

    return True


def _before_send(event: dict, hint: dict) -> dict | None:
    if "exc_info" not in hint:
        return event

    exc_type, exc_value, _ = hint["exc_info"]
    if isinstance(exc_value, RewardError) and exc_value.severity != ErrorSeverity.HIGH:
        return None
    if exc_type.__name__ in ("ValidationError", "RequestValidationError"):
        return None
    return event


def _before_send_transaction(event: dict, hint: dict) -> dict | None:
    transaction = event.get("transaction", "")
    if transaction.startswith(("/health", "/metrics")):
        return None
    return event


def set_user_context(user_id: str, username: str | None = None) -> None:
    sentry_sdk.set_user({"id": user_id, "username": username})


def capture_ledger_error(
    error: Exception,
    user_id: str,
    source: str,
    amount: int,
    extra: dict[str, Any] | None = None,
) -> str | None:
    """Capture a points-ledger failure with high priority.

    Args:
        error: The exception that occurred
        user_id: User ID involved
        source: Ledger source (gacha, game, daily_bonus, admin, ...)
        amount: Signed points amount
        extra: Additional context

    Returns:
        Sentry event ID or None
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_level("fatal")
        scope.set_user({"id": user_id})
        scope.set_tag("ledger_source", source)
        scope.set_tag("ledger_error", "true")
        scope.set_extra("amount", amount)
        if extra:
            for key, value in extra.items():
                scope.set_extra(key, value)

        return sentry_sdk.capture_exception(error)
