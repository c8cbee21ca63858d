from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..types.metrics import TickMetrics
from .entities import Agent, AgentForces, Corpse, FoodParticle, Ripple


@dataclass
class SimulationState:
    """Everything a tick reads and writes, apart from configuration and randomness."""

    width: float
    height: float
    agents: List[Agent] = field(default_factory=list)
    foods: List[FoodParticle] = field(default_factory=list)
    corpses: List[Corpse] = field(default_factory=list)
    ripples: List[Ripple] = field(default_factory=list)
    forces: Dict[int, AgentForces] = field(default_factory=dict)
    emitted: List[Ripple] = field(default_factory=list)
    metrics: Optional[TickMetrics] = None
    tick: int = 0
    shock_intensity: float = 0.0
    next_id: int = 0

    def allocate_id(self) -> int:
        allocated = self.next_id
        self.next_id += 1
        return allocated

    def emit_ripple(self, ripple: Ripple) -> None:
        self.ripples.append(ripple)
        self.emitted.append(ripple)

    @property
    def previous_rho(self) -> float:
        return self.metrics.rho if self.metrics is not None else 0.0
