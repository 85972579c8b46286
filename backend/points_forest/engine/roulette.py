"""Prize wheel."""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from points_forest.engine.selector import select_weighted


@dataclass(frozen=True)
class RouletteSegment:
    id: int
    label: str
    points: int
    probability: float
    color: str = "#10b981"

    @classmethod
    def from_config(cls, raw: Mapping[str, Any]) -> "RouletteSegment":
        return cls(
            id=int(raw["id"]),
            label=str(raw.get("label", f"{raw['points']}pt")),
            points=int(raw["points"]),
            probability=float(raw["probability"]),
            color=str(raw.get("color", "#10b981")),
        )


DEFAULT_SEGMENTS: tuple[RouletteSegment, ...] = (
    RouletteSegment(0, "5pt", 5, 0.4, "#10b981"),
    RouletteSegment(1, "10pt", 10, 0.25, "#3b82f6"),
    RouletteSegment(2, "25pt", 25, 0.15, "#8b5cf6"),
    RouletteSegment(3, "50pt", 50, 0.1, "#f59e0b"),
    RouletteSegment(4, "100pt", 100, 0.05, "#ef4444"),
    RouletteSegment(5, "200pt", 200, 0.03, "#ec4899"),
    RouletteSegment(6, "500pt", 500, 0.015, "#6366f1"),
    RouletteSegment(7, "1000pt", 1000, 0.005, "#dc2626"),
)

# (threshold, tier, message), checked top down
MESSAGE_TIERS: tuple[tuple[int, str, str], ...] = (
    (500, "jackpot", "JACKPOT! An ultra rare win!"),
    (100, "big_win", "BIG WIN! Fantastic result!"),
    (50, "good", "GOOD! Nice result!"),
)
FALLBACK_TIER = ("nice_try", "Nice try! Better luck next time!")


@dataclass(frozen=True)
class RouletteResult:
    segment: RouletteSegment
    points_earned: int
    tier: str
    message: str


def segments_from_config(config: Mapping[str, Any] | None) -> tuple[RouletteSegment, ...]:
    """Segments configured on the game row, or the default wheel."""
    raw_segments: Iterable[Mapping[str, Any]] | None = (config or {}).get("segments")
    if not raw_segments:
        return DEFAULT_SEGMENTS
    return tuple(RouletteSegment.from_config(raw) for raw in raw_segments)


def result_message(points: int) -> tuple[str, str]:
    for threshold, tier, message in MESSAGE_TIERS:
        if points >= threshold:
            return tier, message
    return FALLBACK_TIER


def spin(
    segments: tuple[RouletteSegment, ...] = DEFAULT_SEGMENTS,
    rng: random.Random | None = None,
) -> RouletteResult:
    segment = select_weighted([(s, s.probability) for s in segments], rng)
    tier, message = result_message(segment.points)
    return RouletteResult(
        segment=segment,
        points_earned=segment.points,
        tier=tier,
        message=message,
    )
