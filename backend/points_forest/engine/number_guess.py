"""Guess-the-number game."""

from __future__ import annotations

import random
from dataclasses import dataclass

from points_forest.utils.errors import InvalidScoreError

MIN_NUMBER = 1
MAX_NUMBER = 100


@dataclass(frozen=True)
class GuessResult:
    guess: int
    target: int
    score: int
    points_earned: int
    message: str


def draw_target(rng: random.Random | None = None) -> int:
    return (rng or random).randint(MIN_NUMBER, MAX_NUMBER)


def calculate_score(guess: int, target: int) -> int:
    return max(1, 100 - abs(guess - target))


def result_message(guess: int, target: int) -> str:
    distance = abs(guess - target)
    if distance == 0:
        return "Perfect! Spot on!"
    if distance <= 5:
        return "Great! Very close!"
    if distance <= 15:
        return "Good guess!"
    return "Keep trying next time!"


def evaluate_guess(guess: int, target: int) -> GuessResult:
    if not MIN_NUMBER <= guess <= MAX_NUMBER:
        raise InvalidScoreError(f"Guess must be between {MIN_NUMBER} and {MAX_NUMBER}")

    score = calculate_score(guess, target)
    return GuessResult(
        guess=guess,
        target=target,
        score=score,
        points_earned=score,
        message=result_message(guess, target),
    )
