from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from pygame.math import Vector2

BASE_RADIUS = 4.0
RADIUS_ENERGY_CAP = 1000.0
RADIUS_ENERGY_SCALE = 0.3
MAX_OMEGA = 100.0
DEAD_OMEGA = -1.0


def radius_for_energy(energy: float) -> float:
    return BASE_RADIUS + math.sqrt(max(0.0, min(energy, RADIUS_ENERGY_CAP))) * RADIUS_ENERGY_SCALE


class FoodKind(str, Enum):
    AMBIENT = "ambient"
    DECAY = "decay"


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    energy: float
    spin: int
    omega: float = MAX_OMEGA
    wander_angle: float = 0.0
    age: int = 0
    generation: int = 0

    @property
    def radius(self) -> float:
        return radius_for_energy(self.energy)

    @property
    def active(self) -> bool:
        return self.omega > 0.0


@dataclass(slots=True)
class FoodParticle:
    id: int
    position: Vector2
    value: float
    kind: FoodKind = FoodKind.AMBIENT
    eaten: bool = False


@dataclass(slots=True)
class Corpse:
    position: Vector2
    velocity: Vector2
    energy: float
    decay_timer: float


@dataclass(slots=True)
class Ripple:
    position: Vector2
    max_radius: float
    alpha: float
    color: str
    radius: float = 0.0

    @property
    def faded(self) -> bool:
        return self.alpha <= 0.0


@dataclass(slots=True)
class AgentForces:
    """Per-tick force breakdown kept for inspecting a single agent."""

    appetite: Vector2 = field(default_factory=Vector2)
    exploration: Vector2 = field(default_factory=Vector2)
    net: Vector2 = field(default_factory=Vector2)
