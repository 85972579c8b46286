"""Pure reward logic: weighted draws, game scoring and reveal sequencing."""

from points_forest.engine.selector import pick_by_roll, select_many, select_weighted

__all__ = [
    "pick_by_roll",
    "select_many",
    "select_weighted",
]
