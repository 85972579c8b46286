"""Three-reel slot machine."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass

from points_forest.engine.selector import select_weighted


@dataclass(frozen=True)
class SlotSymbol:
    id: str
    icon: str
    name: str
    probability: float
    value: int


SLOT_SYMBOLS: tuple[SlotSymbol, ...] = (
    SlotSymbol("cherry", "🍒", "Cherry", 0.4, 1),
    SlotSymbol("lemon", "🍋", "Lemon", 0.25, 2),
    SlotSymbol("orange", "🍊", "Orange", 0.15, 3),
    SlotSymbol("bell", "🔔", "Bell", 0.1, 5),
    SlotSymbol("diamond", "💎", "Diamond", 0.05, 10),
    SlotSymbol("star", "🌟", "Star", 0.03, 20),
    SlotSymbol("jackpot", "🎯", "Jackpot", 0.02, 50),
)

SYMBOLS_BY_ID = {symbol.id: symbol for symbol in SLOT_SYMBOLS}

PAYOUT_TABLE: dict[str, dict[str, int]] = {
    "three_of_kind": {
        "cherry": 10, "lemon": 25, "orange": 50, "bell": 100,
        "diamond": 500, "star": 1000, "jackpot": 5000,
    },
    "two_of_kind": {
        "cherry": 2, "lemon": 5, "orange": 10, "bell": 20,
        "diamond": 50, "star": 100, "jackpot": 500,
    },
}

# Paid on every spin without a match
CONSOLATION_POINTS = 1

REEL_COUNT = 3


@dataclass(frozen=True)
class SlotResult:
    symbols: tuple[str, ...]
    combination: str
    multiplier: int
    points_earned: int
    message: str

    @property
    def icons(self) -> list[str]:
        return [SYMBOLS_BY_ID[s].icon for s in self.symbols]


def spin_reels(rng: random.Random | None = None) -> tuple[str, ...]:
    table = [(symbol.id, symbol.probability) for symbol in SLOT_SYMBOLS]
    return tuple(select_weighted(table, rng) for _ in range(REEL_COUNT))


def evaluate_reels(symbols: tuple[str, ...] | list[str]) -> SlotResult:
    """Score a spin.

    Three of a kind is checked first, then a pair, then the consolation
    payout. Unknown symbol ids are scored as cherries.
    """
    ids = tuple(s if s in SYMBOLS_BY_ID else "cherry" for s in symbols)

    if len(set(ids)) == 1:
        multiplier = PAYOUT_TABLE["three_of_kind"].get(ids[0], 1)
        return SlotResult(
            symbols=ids,
            combination="three_of_kind",
            multiplier=multiplier,
            points_earned=multiplier,
            message=f"Three of a kind! {SYMBOLS_BY_ID[ids[0]].name}!",
        )

    counts = Counter(ids)
    pair = next((sid for sid, n in counts.items() if n == 2), None)
    if pair is not None:
        multiplier = PAYOUT_TABLE["two_of_kind"].get(pair, 1)
        return SlotResult(
            symbols=ids,
            combination="two_of_kind",
            multiplier=multiplier,
            points_earned=multiplier,
            message=f"Two of a kind! {SYMBOLS_BY_ID[pair].name}!",
        )

    return SlotResult(
        symbols=ids,
        combination="no_match",
        multiplier=CONSOLATION_POINTS,
        points_earned=CONSOLATION_POINTS,
        message="No match this time, here is a consolation point",
    )


def play(rng: random.Random | None = None) -> SlotResult:
    return evaluate_reels(spin_reels(rng))
