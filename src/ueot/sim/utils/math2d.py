from __future__ import annotations

import math

EPSILON = 1e-9


def _wrap_coordinate(value: float, size: float) -> float:
    wrapped = value % size
    # float modulo of a tiny negative value can round up to `size`
    if wrapped >= size:
        return 0.0
    return wrapped


def wrap_position(x: float, y: float, width: float, height: float) -> tuple[float, float]:
    """Map a point onto the torus so that 0 <= x < width and 0 <= y < height."""
    return _wrap_coordinate(x, width), _wrap_coordinate(y, height)


def _is_finite_xy(x: float, y: float) -> bool:
    return math.isfinite(x) and math.isfinite(y)
