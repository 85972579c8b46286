"""Gacha drop tables and draw logic.

A machine declares per-rarity pull rates (``{"rates": {"rare": 0.08, ...}}``).
Each draw first picks a rarity from those rates, then an item of that
rarity weighted by its pool weight. When a machine has no rates, or the
drawn rarity has no items in the pool, the draw falls back to the pool's
absolute ``drop_rate`` values.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from points_forest.engine.selector import select_weighted
from points_forest.utils.errors import EmptyOutcomesError


@dataclass(frozen=True)
class RarityInfo:
    rarity: str
    name: str
    color: str
    emoji: str
    base_rate: float
    multiplier: float


RARITY_INFO: dict[str, RarityInfo] = {
    "common": RarityInfo("common", "Common", "#94a3b8", "⚪", 0.7, 1.0),
    "uncommon": RarityInfo("uncommon", "Uncommon", "#60a5fa", "🔵", 0.2, 1.5),
    "rare": RarityInfo("rare", "Rare", "#fbbf24", "🟡", 0.08, 2.0),
    "epic": RarityInfo("epic", "Epic", "#a855f7", "🟣", 0.015, 4.0),
    "legendary": RarityInfo("legendary", "Legendary", "#ef4444", "🔴", 0.004, 10.0),
    "mythical": RarityInfo("mythical", "Mythical", "#f97316", "🟠", 0.001, 50.0),
}

# Highest first
RARITY_ORDER: tuple[str, ...] = ("mythical", "legendary", "epic", "rare", "uncommon", "common")
_RARITY_RANK = {rarity: rank for rank, rarity in enumerate(reversed(RARITY_ORDER))}

SINGLE_PULL = 1
MULTI_PULL = 10
ALLOWED_PULL_COUNTS = (SINGLE_PULL, MULTI_PULL)


@dataclass(frozen=True)
class PoolEntry:
    """Flattened pool row + item, independent of the ORM."""

    item_id: str
    name: str
    rarity: str
    category: str
    drop_rate: float
    weight: int = 1
    point_value: int | None = None
    icon_emoji: str | None = None
    rarity_color: str | None = None
    is_jackpot: bool = False

    def to_pull_item(self) -> dict[str, Any]:
        """Shape stored in ``gacha_pulls.items_received``."""
        return {
            "item_id": self.item_id,
            "name": self.name,
            "rarity": self.rarity,
            "category": self.category,
            "point_value": self.point_value,
            "icon_emoji": self.icon_emoji,
            "rarity_color": self.rarity_color or RARITY_INFO.get(self.rarity, RARITY_INFO["common"]).color,
            "is_jackpot": self.is_jackpot,
        }


def rarity_rates(pull_rates: Mapping[str, Any] | None) -> dict[str, float]:
    """Extract ``{rarity: rate}`` from a machine's ``pull_rates`` blob."""
    rates = (pull_rates or {}).get("rates") or {}
    return {
        rarity: float(rate)
        for rarity, rate in rates.items()
        if rarity in RARITY_INFO and float(rate) > 0
    }


def _draw_one(
    entries: Sequence[PoolEntry],
    by_rarity: Mapping[str, list[PoolEntry]],
    rates: Mapping[str, float],
    rng: random.Random | None,
) -> PoolEntry:
    if rates:
        # Ascending rarity so the common bucket absorbs rounding drift
        rarity = select_weighted(
            [(r, rates[r]) for r in reversed(RARITY_ORDER) if r in rates],
            rng,
        )
        candidates = by_rarity.get(rarity)
        if candidates:
            total = sum(max(0, e.weight) for e in candidates)
            if total > 0:
                return select_weighted([(e, max(0, e.weight) / total) for e in candidates], rng)

    return select_weighted([(e, e.drop_rate) for e in entries], rng)


def draw_items(
    entries: Sequence[PoolEntry],
    count: int,
    pull_rates: Mapping[str, Any] | None = None,
    rng: random.Random | None = None,
) -> list[PoolEntry]:
    """Draw ``count`` items independently from a machine pool.

    Raises:
        EmptyOutcomesError: If the pool is empty
    """
    if not entries:
        raise EmptyOutcomesError("Gacha pool has no items")
    if count < 1:
        raise ValueError("count must be >= 1")

    by_rarity: dict[str, list[PoolEntry]] = {}
    for entry in entries:
        by_rarity.setdefault(entry.rarity, []).append(entry)

    rates = rarity_rates(pull_rates)
    return [_draw_one(entries, by_rarity, rates, rng) for _ in range(count)]


def best_rarity(rarities: Iterable[str]) -> str:
    """Highest rarity among ``rarities``; ``common`` when empty."""
    best = "common"
    for rarity in rarities:
        if _RARITY_RANK.get(rarity, 0) > _RARITY_RANK[best]:
            best = rarity
    return best


def total_value(items: Iterable[Mapping[str, Any]]) -> int:
    """Sum of item point values; missing values count as zero."""
    return sum(max(0, int(item.get("point_value") or 0)) for item in items)
