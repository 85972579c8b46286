"""In-process TTL cache for read-mostly reward data.

Bounded LRU: once ``max_entries`` is exceeded the least recently used key is
evicted. Entries past their TTL are treated as misses and dropped on read.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from points_forest.config import get_settings
from points_forest.middleware.prometheus import record_cache_access

_MISSING = object()


@dataclass(slots=True)
class _Entry:
    value: Any
    stored_at: float
    expires_at: float


class TTLCache:
    """LRU cache with a per-entry time to live (seconds)."""

    def __init__(
        self,
        max_entries: int = 100,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "reward",
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        now = self._clock()
        entry = _Entry(value, now, now + (self.default_ttl if ttl is None else ttl))
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                hit = False
            elif self._clock() > entry.expires_at:
                del self._entries[key]
                hit = False
            else:
                self._entries.move_to_end(key)
                hit = True

        record_cache_access(self.name, hit)
        return entry.value if hit else default

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any:
        """Read-through helper: return the cached value or load and store it.

        ``None`` results are not cached.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        value = await loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_user(self, user_id: str) -> int:
        """Drop every key that mentions ``user_id`` or is user-scoped.

        Returns:
            Number of keys removed
        """
        with self._lock:
            doomed = [
                key for key in self._entries
                if user_id in key or key.startswith("user_")
            ]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        with self._lock:
            items = list(self._entries.items())
        valid = [key for key, entry in items if now <= entry.expires_at]
        return {
            "total": len(items),
            "valid": len(valid),
            "expired": len(items) - len(valid),
            "keys": valid,
        }

    def __len__(self) -> int:
        return len(self._entries)


class CacheKeys:
    """Key builders and TTLs for cached reward data."""

    PROFILE_TTL = 10 * 60
    STATS_TTL = 2 * 60
    GAMES_TTL = 30 * 60
    LEADERBOARD_TTL = 60

    @staticmethod
    def profile(user_id: str) -> str:
        return f"profile_{user_id}"

    @staticmethod
    def stats(user_id: str) -> str:
        return f"stats_{user_id}"

    @staticmethod
    def games() -> str:
        return "games_list"

    @staticmethod
    def leaderboard(board: str) -> str:
        return f"leaderboard_{board}"


def _build_default_cache() -> TTLCache:
    settings = get_settings()
    return TTLCache(
        max_entries=settings.cache_max_entries,
        default_ttl=settings.cache_default_ttl_seconds,
    )


# Process-wide singleton
reward_cache = _build_default_cache()
