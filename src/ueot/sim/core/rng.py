from __future__ import annotations

import math
import random
from typing import Optional

from pygame.math import Vector2


class RandomSource:
    """Uniform random reals for every stochastic decision of the simulation.

    With a seed the draw sequence is reproducible and `reset` rewinds it;
    without one the source draws from ambient entropy.
    """

    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def reset(self) -> None:
        if self._seed is not None:
            self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_centered(self) -> float:
        return self._random.random() - 0.5

    def next_angle(self) -> float:
        return self._random.random() * 2.0 * math.pi

    def next_spin(self, ratio: float) -> int:
        return 1 if self._random.random() < ratio else -1

    def next_position(self, width: float, height: float) -> Vector2:
        return Vector2(self._random.random() * width, self._random.random() * height)
