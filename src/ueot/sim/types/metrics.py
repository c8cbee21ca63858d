from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EcosystemState(str, Enum):
    ADAPTIVE = "Adaptive"
    CRITICAL = "Critical"
    OVERHEATED = "Overheated"
    COLLAPSE = "Collapse"


@dataclass(slots=True)
class TickMetrics:
    tick: int
    eta: float
    rho: float
    mean_integrity: float
    population: int
    food: int
    corpses: int
    state: EcosystemState
    births: int = 0
    deaths: int = 0
    total_energy: float = 0.0
    tick_duration_ms: float = 0.0
