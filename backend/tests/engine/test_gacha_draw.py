"""Gacha draw tests: two-stage rarity/item selection and result summaries."""

import random
from collections import Counter

import pytest

from points_forest.engine.gacha import (
    PoolEntry,
    RARITY_INFO,
    best_rarity,
    draw_items,
    rarity_rates,
    total_value,
)
from points_forest.utils.errors import EmptyOutcomesError


class FixedRoll(random.Random):
    def __init__(self, roll: float):
        super().__init__()
        self.roll = roll

    def random(self) -> float:
        return self.roll


def entry(item_id: str, rarity: str = "common", drop_rate: float = 0.0, weight: int = 1, **kwargs) -> PoolEntry:
    return PoolEntry(
        item_id=item_id,
        name=item_id.title(),
        rarity=rarity,
        category="badge",
        drop_rate=drop_rate,
        weight=weight,
        **kwargs,
    )


class TestDrawItems:
    def test_empty_pool_raises(self):
        with pytest.raises(EmptyOutcomesError):
            draw_items([], 1)

    def test_count_must_be_positive(self):
        with pytest.raises(ValueError):
            draw_items([entry("acorn", drop_rate=1.0)], 0)

    def test_draws_requested_count(self):
        items = draw_items([entry("acorn", drop_rate=1.0)], 10, rng=random.Random(1))

        assert len(items) == 10

    def test_rarity_stage_selects_only_drawn_rarity(self):
        pool = [
            entry("acorn", "common", 0.9),
            entry("owl", "rare", 0.1),
        ]

        items = draw_items(pool, 50, {"rates": {"rare": 1.0}}, random.Random(7))

        assert {item.item_id for item in items} == {"owl"}

    def test_item_stage_uses_relative_weight(self):
        pool = [
            entry("owl", "rare", 0.05, weight=3),
            entry("fox", "rare", 0.05, weight=1),
        ]
        rates = {"rates": {"rare": 1.0}}

        # Item stage sees owl at 0.75 and fox at 0.25
        assert draw_items(pool, 1, rates, FixedRoll(0.5))[0].item_id == "owl"
        assert draw_items(pool, 1, rates, FixedRoll(0.8))[0].item_id == "fox"

    def test_without_rates_uses_drop_rate(self):
        pool = [entry("acorn", drop_rate=1.0), entry("owl", "rare", drop_rate=0.0)]

        items = draw_items(pool, 20, None, random.Random(3))

        assert Counter(item.item_id for item in items) == {"acorn": 20}

    def test_missing_rarity_falls_back_to_drop_rate(self):
        pool = [entry("acorn", "common", drop_rate=1.0)]

        items = draw_items(pool, 5, {"rates": {"mythical": 1.0}}, random.Random(3))

        assert all(item.item_id == "acorn" for item in items)


def test_rarity_rates_ignore_unknown_and_zero():
    rates = rarity_rates({"rates": {"rare": "0.25", "shiny": 0.5, "epic": 0}})

    assert rates == {"rare": 0.25}
    assert rarity_rates(None) == {}


@pytest.mark.parametrize(
    "rarities,best",
    [
        ([], "common"),
        (["common", "uncommon"], "uncommon"),
        (["rare", "epic", "common"], "epic"),
        (["legendary", "mythical"], "mythical"),
        (["unknown", "rare"], "rare"),
    ],
)
def test_best_rarity(rarities, best):
    assert best_rarity(rarities) == best


def test_total_value_treats_missing_as_zero():
    items = [{"point_value": 50}, {"point_value": None}, {}, {"point_value": 25}]

    assert total_value(items) == 75
    assert total_value([]) == 0


def test_pull_item_defaults_rarity_color():
    item = entry("owl", "rare", 0.1, point_value=30).to_pull_item()

    assert item["rarity_color"] == RARITY_INFO["rare"].color
    assert item["point_value"] == 30
    assert item["is_jackpot"] is False
