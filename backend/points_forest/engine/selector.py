"""Weighted random selection shared by every reward table.

Outcomes are ``(value, weight)`` pairs whose weights are expected to sum to
1. A single roll ``r`` in ``[0, 1)`` is compared against the running sum of
weights and the first outcome whose cumulative weight reaches ``r`` wins.
Weights are not normalised; if floating point drift leaves the roll
unmatched, the first outcome is returned.

This uses the platform PRNG and makes no fairness or reproducibility
guarantee beyond what ``random.Random`` provides.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

from points_forest.utils.errors import EmptyOutcomesError

T = TypeVar("T")

Outcome = tuple[T, float]


def _validate(outcomes: Sequence[tuple[T, float]]) -> None:
    if not outcomes:
        raise EmptyOutcomesError()
    for value, weight in outcomes:
        if weight < 0:
            raise ValueError(f"Negative weight {weight!r} for outcome {value!r}")


def pick_by_roll(outcomes: Sequence[tuple[T, float]], roll: float) -> T:
    """Deterministic core of :func:`select_weighted`.

    Args:
        outcomes: Non-empty ``(value, weight)`` pairs
        roll: Number in ``[0, 1)``

    Returns:
        The first value whose cumulative weight is ``>= roll``, or the first
        value when none qualifies.

    Raises:
        EmptyOutcomesError: If ``outcomes`` is empty
        ValueError: If a weight is negative
    """
    _validate(outcomes)

    cumulative = 0.0
    for value, weight in outcomes:
        cumulative += weight
        if roll <= cumulative:
            return value

    return outcomes[0][0]


def select_weighted(
    outcomes: Sequence[tuple[T, float]],
    rng: random.Random | None = None,
) -> T:
    """Draw one value with probability proportional to its weight.

    Duplicate values are independent entries, so their weights add up.
    """
    _validate(outcomes)
    roll = rng.random() if rng is not None else random.random()
    return pick_by_roll(outcomes, roll)


def select_many(
    outcomes: Sequence[tuple[T, float]],
    count: int,
    rng: random.Random | None = None,
) -> list[T]:
    """Draw ``count`` independent values."""
    if count < 0:
        raise ValueError("count must not be negative")
    return [select_weighted(outcomes, rng) for _ in range(count)]
