"""Reward calendar day helpers.

A reward day runs from local midnight (inclusive) to the next local midnight
(exclusive) in the configured reward timezone.
"""

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from points_forest.config import get_settings


@lru_cache(maxsize=16)
def reward_tz(name: str | None = None) -> ZoneInfo:
    """Resolve the reward timezone (defaults to the configured one)."""
    return ZoneInfo(name or get_settings().reward_timezone)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_date(now: datetime, tz: ZoneInfo | None = None) -> date:
    """Calendar date of ``now`` in the reward timezone."""
    return now.astimezone(tz or reward_tz()).date()


def day_start(now: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Local midnight of the day containing ``now``, as an aware datetime."""
    tz = tz or reward_tz()
    return datetime.combine(local_date(now, tz), time.min, tzinfo=tz)


def next_day_start(now: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Local midnight of the following day."""
    tz = tz or reward_tz()
    return datetime.combine(local_date(now, tz) + timedelta(days=1), time.min, tzinfo=tz)


def in_today(ts: datetime, now: datetime, tz: ZoneInfo | None = None) -> bool:
    """Whether ``ts`` falls on the same reward day as ``now``.

    Naive timestamps are treated as UTC, which is how the database stores
    them.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return day_start(now, tz) <= ts < next_day_start(now, tz)


def count_since_midnight(
    timestamps: Iterable[datetime],
    now: datetime,
    tz: ZoneInfo | None = None,
) -> int:
    """Count events that happened on the current reward day."""
    tz = tz or reward_tz()
    return sum(1 for ts in timestamps if in_today(ts, now, tz))


def seconds_until_reset(now: datetime, tz: ZoneInfo | None = None) -> int:
    remaining = next_day_start(now, tz) - now
    return max(1, int(remaining.total_seconds()))


def week_start(now: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Local midnight of the Sunday that opens the week containing ``now``."""
    tz = tz or reward_tz()
    today = local_date(now, tz)
    return datetime.combine(today - timedelta(days=(today.weekday() + 1) % 7), time.min, tzinfo=tz)


def month_start(now: datetime, tz: ZoneInfo | None = None) -> datetime:
    tz = tz or reward_tz()
    return datetime.combine(local_date(now, tz).replace(day=1), time.min, tzinfo=tz)
