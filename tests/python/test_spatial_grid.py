from __future__ import annotations

import pytest
from pygame.math import Vector2

from ueot.sim.core.entities import FoodParticle
from ueot.sim.core.spatial_grid import SpatialGrid


def _foods(points):
    return [FoodParticle(id=idx, position=Vector2(x, y), value=1.0) for idx, (x, y) in enumerate(points)]


def test_collect_within_matches_bruteforce_in_list_order():
    foods = _foods([(0, 0), (1, 1), (3, 0.5), (6, 6), (2.4, 2.4), (-1.5, 0.2)])
    grid: SpatialGrid[FoodParticle] = SpatialGrid(cell_size=2.5)
    grid.rebuild(foods)

    center = Vector2(1, 1)
    radius_sq = 9.0
    out_items: list[FoodParticle] = []
    out_dist_sq: list[float] = []
    grid.collect_within(center, grid.build_neighbor_cell_offsets(3.0), radius_sq, out_items, out_dist_sq)

    brute = [food for food in foods if (food.position - center).length_squared() < radius_sq]
    assert [food.id for food in out_items] == [food.id for food in brute]
    for food, dist_sq in zip(out_items, out_dist_sq):
        assert dist_sq == pytest.approx((food.position - center).length_squared())


def test_collect_within_is_strict_at_radius():
    foods = _foods([(3.0, 0.0), (2.999, 0.0)])
    grid: SpatialGrid[FoodParticle] = SpatialGrid(cell_size=2.0)
    grid.rebuild(foods)

    out_items: list[FoodParticle] = []
    out_dist_sq: list[float] = []
    grid.collect_within(Vector2(0.0, 0.0), grid.build_neighbor_cell_offsets(3.0), 9.0, out_items, out_dist_sq)

    assert [food.id for food in out_items] == [1]


def test_rebuild_clears_previous_entries_and_buffers():
    grid: SpatialGrid[FoodParticle] = SpatialGrid(cell_size=2.0)
    grid.rebuild(_foods([(0.5, 0.0)]))

    out_items: list[FoodParticle] = []
    out_dist_sq: list[float] = [42.0]
    offsets = grid.build_neighbor_cell_offsets(1.6)
    grid.collect_within(Vector2(0.0, 0.0), offsets, 1.6 * 1.6, out_items, out_dist_sq)
    assert len(out_items) == 1
    assert out_dist_sq == [0.25]

    grid.rebuild([])
    grid.collect_within(Vector2(0.0, 0.0), offsets, 1.6 * 1.6, out_items, out_dist_sq)
    assert out_items == []
    assert out_dist_sq == []


def test_non_positive_cell_size_is_rejected():
    with pytest.raises(ValueError):
        SpatialGrid(cell_size=0.0)
