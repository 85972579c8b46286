"""Slot machine scoring tests."""

import random

import pytest
from hypothesis import given
from hypothesis import strategies as st

from points_forest.engine.slots import (
    CONSOLATION_POINTS,
    PAYOUT_TABLE,
    SLOT_SYMBOLS,
    SYMBOLS_BY_ID,
    evaluate_reels,
    play,
    spin_reels,
)

SYMBOL_IDS = [symbol.id for symbol in SLOT_SYMBOLS]


class TestEvaluateReels:
    def test_three_diamonds_pay_500(self):
        result = evaluate_reels(("diamond", "diamond", "diamond"))

        assert result.combination == "three_of_kind"
        assert result.multiplier == 500
        assert result.points_earned == 500

    def test_pair_of_cherries(self):
        result = evaluate_reels(["cherry", "bell", "cherry"])

        assert result.combination == "two_of_kind"
        assert result.points_earned == 2

    def test_no_match_pays_consolation(self):
        result = evaluate_reels(("cherry", "lemon", "orange"))

        assert result.combination == "no_match"
        assert result.multiplier == 1
        assert result.points_earned == CONSOLATION_POINTS == 1

    def test_unknown_symbols_score_as_cherry(self):
        result = evaluate_reels(("banana", "cherry", "cherry"))

        assert result.symbols == ("cherry", "cherry", "cherry")
        assert result.points_earned == PAYOUT_TABLE["three_of_kind"]["cherry"]

    def test_icons_follow_symbols(self):
        result = evaluate_reels(("jackpot", "star", "bell"))

        assert result.icons == ["🎯", "🌟", "🔔"]

    @pytest.mark.parametrize("symbol", SYMBOL_IDS)
    def test_three_of_kind_table(self, symbol):
        result = evaluate_reels((symbol, symbol, symbol))

        assert result.points_earned == PAYOUT_TABLE["three_of_kind"][symbol]

    @given(st.tuples(*[st.sampled_from(SYMBOL_IDS)] * 3))
    def test_every_spin_pays_at_least_one_point(self, symbols):
        result = evaluate_reels(symbols)

        assert result.points_earned == result.multiplier >= 1
        assert result.combination in {"three_of_kind", "two_of_kind", "no_match"}


def test_spin_reels_returns_three_known_symbols():
    symbols = spin_reels(random.Random(3))

    assert len(symbols) == 3
    assert all(s in SYMBOLS_BY_ID for s in symbols)


def test_symbol_probabilities_sum_to_one():
    assert sum(symbol.probability for symbol in SLOT_SYMBOLS) == pytest.approx(1.0)


def test_play_is_reproducible_with_seeded_rng():
    assert play(random.Random(99)) == play(random.Random(99))
