"""Lucky spring blessings.

A visit draws a tier by weight, then a point amount uniformly inside the
tier's range.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from points_forest.engine.selector import select_weighted

TIER_ORDER = ("common", "rare", "epic", "legendary", "mythical")


@dataclass(frozen=True)
class SpringTier:
    tier: str
    probability: float
    min_points: int
    max_points: int

    @classmethod
    def from_config(cls, raw: Mapping[str, Any]) -> "SpringTier":
        low, high = int(raw["min_points"]), int(raw["max_points"])
        if low < 0 or high < low:
            raise ValueError(f"Invalid point range {low}..{high} for tier {raw.get('tier')}")
        return cls(
            tier=str(raw["tier"]),
            probability=float(raw["probability"]),
            min_points=low,
            max_points=high,
        )


DEFAULT_TIERS: tuple[SpringTier, ...] = (
    SpringTier("common", 0.6, 10, 30),
    SpringTier("rare", 0.25, 30, 60),
    SpringTier("epic", 0.1, 60, 120),
    SpringTier("legendary", 0.04, 120, 250),
    SpringTier("mythical", 0.01, 250, 500),
)

TIER_MESSAGES = {
    "common": "The spring sparkles softly.",
    "rare": "A cool breeze carries a gift.",
    "epic": "The water glows with a bright light!",
    "legendary": "The spirit of the spring smiles on you!",
    "mythical": "A miracle rises from the depths!",
}


@dataclass(frozen=True)
class SpringBlessing:
    tier: str
    points_earned: int
    message: str


def tiers_from_config(config: Iterable[Mapping[str, Any]] | None) -> tuple[SpringTier, ...]:
    """Tiers configured on the spring row, or the default table."""
    if not config:
        return DEFAULT_TIERS
    return tuple(SpringTier.from_config(raw) for raw in config)


def draw_blessing(
    tiers: tuple[SpringTier, ...] = DEFAULT_TIERS,
    rng: random.Random | None = None,
    multiplier: float = 1.0,
) -> SpringBlessing:
    """Draw one blessing; ``multiplier`` scales the points, rounding down."""
    tier = select_weighted([(t, t.probability) for t in tiers], rng)
    base = (rng or random).randint(tier.min_points, tier.max_points)
    return SpringBlessing(
        tier=tier.tier,
        points_earned=max(0, math.floor(base * multiplier)),
        message=TIER_MESSAGES.get(tier.tier, TIER_MESSAGES["common"]),
    )
