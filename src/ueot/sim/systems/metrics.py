from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from ..core.entities import Agent, FoodParticle
from ..types.metrics import EcosystemState, TickMetrics

RHO_EPSILON = 0.001
CRITICAL_RHO = 0.65
OVERHEATED_ETA = 2.5
COLLAPSE_POPULATION = 10


def classify(eta: float, rho: float, population: int) -> EcosystemState:
    """Later rules override earlier ones."""
    state = EcosystemState.ADAPTIVE
    if rho > CRITICAL_RHO:
        state = EcosystemState.CRITICAL
    if eta > OVERHEATED_ETA:
        state = EcosystemState.OVERHEATED
    if population < COLLAPSE_POPULATION:
        state = EcosystemState.COLLAPSE
    return state


def order_parameters(speeds: Sequence[float], velocities: Iterable[tuple[float, float]]) -> tuple[float, float]:
    """Mean speed (eta) and velocity-alignment coherence (rho) of a population."""
    count = len(speeds)
    if count == 0:
        return 0.0, 0.0
    total_speed = math.fsum(speeds)
    sum_x = 0.0
    sum_y = 0.0
    for vx, vy in velocities:
        sum_x += vx
        sum_y += vy
    eta = total_speed / count
    rho = math.hypot(sum_x, sum_y) / (total_speed + RHO_EPSILON)
    return eta, max(0.0, min(1.0, rho))


def total_energy(agents: Iterable[Agent], foods: Iterable[FoodParticle]) -> float:
    return sum(max(0.0, agent.energy) for agent in agents) + sum(food.value for food in foods)


def create_metrics(
    tick: int,
    agents: Sequence[Agent],
    speeds: Sequence[float],
    foods: Sequence[FoodParticle],
    corpse_count: int,
    births: int,
    deaths: int,
    duration_ms: float,
    previous: Optional[TickMetrics],
) -> TickMetrics:
    population = len(agents)
    food_count = len(foods)
    energy = total_energy(agents, foods)
    if population == 0:
        return TickMetrics(
            tick=tick,
            eta=previous.eta if previous is not None else 0.0,
            rho=previous.rho if previous is not None else 0.0,
            mean_integrity=previous.mean_integrity if previous is not None else 0.0,
            population=0,
            food=food_count,
            corpses=corpse_count,
            state=EcosystemState.COLLAPSE,
            births=births,
            deaths=deaths,
            total_energy=energy,
            tick_duration_ms=duration_ms,
        )
    eta, rho = order_parameters(speeds, ((agent.velocity.x, agent.velocity.y) for agent in agents))
    mean_integrity = sum(agent.omega for agent in agents) / population
    return TickMetrics(
        tick=tick,
        eta=eta,
        rho=rho,
        mean_integrity=mean_integrity,
        population=population,
        food=food_count,
        corpses=corpse_count,
        state=classify(eta, rho, population),
        births=births,
        deaths=deaths,
        total_energy=energy,
        tick_duration_ms=duration_ms,
    )
