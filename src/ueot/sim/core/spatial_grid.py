from __future__ import annotations

import math
from typing import Dict, Generic, List, Protocol, Tuple, TypeVar

from pygame.math import Vector2


class _Positioned(Protocol):
    position: Vector2


T = TypeVar("T", bound=_Positioned)


class SpatialGrid(Generic[T]):
    """Uniform bucket grid over the plane (no wrap-around).

    Entries keep their insertion index so that callers can break distance
    ties the same way a linear scan of the source list would.
    """

    def __init__(self, cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self._cell_size = cell_size
        self._cells: Dict[Tuple[int, int], List[Tuple[int, T]]] = {}
        self._active_keys: List[Tuple[int, int]] = []
        self._count = 0

    def build_neighbor_cell_offsets(self, radius: float) -> List[Tuple[int, int]]:
        cell_range = int(math.ceil(radius / self._cell_size))
        return [(dx, dy) for dx in range(-cell_range, cell_range + 1) for dy in range(-cell_range, cell_range + 1)]

    def clear(self) -> None:
        for key in self._active_keys:
            bucket = self._cells.get(key)
            if bucket:
                bucket.clear()
        self._active_keys.clear()
        self._count = 0

    def rebuild(self, items: List[T]) -> None:
        self.clear()
        for item in items:
            self.insert(item)

    def insert(self, item: T) -> None:
        key = self._cell_key(item.position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
            self._active_keys.append(key)
        elif not bucket:
            # Bucket exists but was cleared; mark it active again.
            self._active_keys.append(key)
        bucket.append((self._count, item))
        self._count += 1

    def collect_within(
        self,
        position: Vector2,
        cell_offsets: List[Tuple[int, int]],
        radius_sq: float,
        out_items: List[T],
        out_dist_sq: List[float],
    ) -> None:
        """
        Fill the buffers with every item strictly closer than sqrt(radius_sq).

        Results come back in insertion order, matching a linear scan.
        """

        out_items.clear()
        out_dist_sq.clear()
        base_key = self._cell_key(position)
        pos_x = position.x
        pos_y = position.y
        cells = self._cells
        found: List[Tuple[int, T, float]] = []

        for dx, dy in cell_offsets:
            bucket = cells.get((base_key[0] + dx, base_key[1] + dy))
            if not bucket:
                continue
            for order, item in bucket:
                pos = item.position
                offset_x = pos.x - pos_x
                offset_y = pos.y - pos_y
                dist_sq = offset_x * offset_x + offset_y * offset_y
                if dist_sq < radius_sq:
                    found.append((order, item, dist_sq))

        found.sort(key=lambda entry: entry[0])
        for _, item, dist_sq in found:
            out_items.append(item)
            out_dist_sq.append(dist_sq)

    def _cell_key(self, position: Vector2) -> Tuple[int, int]:
        return (int(position.x // self._cell_size), int(position.y // self._cell_size))
