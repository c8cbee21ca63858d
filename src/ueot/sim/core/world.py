from __future__ import annotations

import logging
from dataclasses import replace
from time import perf_counter
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from pygame.math import Vector2

from ..systems import lifecycle, metrics as metrics_system
from ..systems.integration import integrate_agent
from ..systems.interactions import InteractionScratch, apply_impulses, collision_impulses, summarize_neighbors
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from .config import (
    MAX_AGENTS,
    MAX_FOOD,
    SHOCK_DECAY_PER_TICK,
    SHOCK_MAGNITUDE,
    SimulationConfig,
    SimulationParams,
    SpinRule,
    clamp_params,
    validate_arena,
)
from .entities import Agent, AgentForces, Corpse, FoodKind, FoodParticle, Ripple
from .rng import RandomSource
from .state import SimulationState

logger = logging.getLogger(__name__)

INITIAL_ENERGY = 80.0
INITIAL_SPEED_SPREAD = 3.0


class StepResult(NamedTuple):
    state: SimulationState
    metrics: TickMetrics
    effects: List[Ripple]


def _spawn_agent(state: SimulationState, params: SimulationParams, rng: RandomSource) -> Agent:
    position = rng.next_position(state.width, state.height)
    velocity = Vector2(rng.next_centered() * INITIAL_SPEED_SPREAD, rng.next_centered() * INITIAL_SPEED_SPREAD)
    return Agent(
        id=state.allocate_id(),
        position=position,
        velocity=velocity,
        energy=INITIAL_ENERGY,
        spin=rng.next_spin(params.spin_ratio),
        wander_angle=rng.next_angle(),
    )


def initialize(
    width: float,
    height: float,
    initial_agents: int,
    initial_food: int,
    params: Optional[SimulationParams] = None,
    rng: Optional[RandomSource] = None,
) -> SimulationState:
    """Build a fresh arena with a random population and ambient food."""
    validate_arena(width, height, initial_agents, initial_food)
    params = params if params is not None else SimulationParams()
    rng = rng if rng is not None else RandomSource()
    state = SimulationState(width=float(width), height=float(height))
    for _ in range(min(int(initial_agents), MAX_AGENTS)):
        state.agents.append(_spawn_agent(state, params, rng))
    for _ in range(min(int(initial_food), MAX_FOOD)):
        state.foods.append(
            FoodParticle(
                id=state.allocate_id(),
                position=rng.next_position(state.width, state.height),
                value=params.food_value,
                kind=FoodKind.AMBIENT,
            )
        )
    state.shock_intensity = max(0.0, params.shock_intensity)
    return state


def trigger_shock(state: SimulationState, magnitude: float = SHOCK_MAGNITUDE) -> None:
    """Set the shock level; it decays by a fixed amount every tick."""
    state.shock_intensity = max(0.0, magnitude)


def step(
    state: SimulationState,
    params: SimulationParams,
    rng: RandomSource,
    scratch: Optional[InteractionScratch] = None,
) -> StepResult:
    """Advance the simulation by one tick.

    The tick is applied in full before returning: corpses and regeneration,
    collision impulses, the read-only neighbour scan, integration and
    lifecycle per agent, then the collection swap and metrics.

    A positive `params.shock_intensity` holds the shock level at least that
    high for as long as it stays set.
    """
    start = perf_counter()
    scratch = scratch if scratch is not None else InteractionScratch()
    state.emitted = []
    shock = max(state.shock_intensity, params.shock_intensity)
    rho_prev = state.previous_rho
    deaths = 0

    pending_food: List[FoodParticle] = []
    lifecycle.tick_corpses(state, params, rng, pending_food)
    lifecycle.regenerate_food(state, params, rng, pending_food)

    active: List[Agent] = []
    for agent in state.agents:
        if agent.active:
            active.append(agent)
        else:
            lifecycle.kill_agent(state, agent, rng)
            deaths += 1

    apply_impulses(active, collision_impulses(active, params))
    summaries = summarize_neighbors(active, state.foods, params, scratch)

    births: List[Agent] = []
    speeds: List[float] = []
    forces: Dict[int, AgentForces] = {}
    population = len(active)
    for agent, summary in zip(active, summaries):
        speed, agent_forces = integrate_agent(agent, summary, params, rng, shock, state.width, state.height)
        speeds.append(speed)
        forces[agent.id] = agent_forces
        died = lifecycle.apply_life_cycle(
            state, agent, summary, speed, params, rng, shock, rho_prev, population, births
        )
        if died:
            deaths += 1

    measured = active + births
    speeds.extend(child.velocity.length() for child in births)

    state.foods = [food for food in state.foods if not food.eaten]
    state.foods.extend(pending_food)
    state.agents = [agent for agent in active if agent.active]
    state.agents.extend(births)
    state.forces = forces
    lifecycle.age_ripples(state)
    state.shock_intensity = max(0.0, shock - SHOCK_DECAY_PER_TICK)

    elapsed_ms = (perf_counter() - start) * 1000.0
    metrics = metrics_system.create_metrics(
        state.tick,
        measured,
        speeds,
        state.foods,
        len(state.corpses),
        len(births),
        deaths,
        elapsed_ms,
        state.metrics,
    )
    state.metrics = metrics
    state.tick += 1
    logger.debug(
        "tick=%d population=%d births=%d deaths=%d state=%s",
        metrics.tick,
        metrics.population,
        metrics.births,
        metrics.deaths,
        metrics.state.value,
    )
    return StepResult(state, metrics, list(state.emitted))


class World:
    """Owns the simulation state and serves the control and rendering roles between ticks."""

    def __init__(self, config: SimulationConfig, rng: Optional[RandomSource] = None):
        validate_arena(config.width, config.height, config.initial_agents, config.initial_food)
        self._config = config
        self._params = clamp_params(config.params, config.ranges)
        self._rng = rng if rng is not None else RandomSource(config.seed)
        self._scratch = InteractionScratch()
        self._state = self._bootstrap()
        self._params = replace(self._params, shock_intensity=0.0)

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def params(self) -> SimulationParams:
        return self._params

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def tick(self) -> int:
        return self._state.tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._state.metrics

    @property
    def agents(self) -> Tuple[Agent, ...]:
        return tuple(self._state.agents)

    @property
    def foods(self) -> Tuple[FoodParticle, ...]:
        return tuple(self._state.foods)

    @property
    def corpses(self) -> Tuple[Corpse, ...]:
        return tuple(self._state.corpses)

    @property
    def ripples(self) -> Tuple[Ripple, ...]:
        return tuple(self._state.ripples)

    @property
    def shock_intensity(self) -> float:
        return self._state.shock_intensity

    def forces(self, agent_id: int) -> AgentForces | None:
        return self._state.forces.get(agent_id)

    def step(self) -> TickMetrics:
        result = step(self._state, self._params, self._rng, self._scratch)
        return result.metrics

    def configure(self, params: SimulationParams) -> SimulationParams:
        """Swap in a whole new parameter bundle; takes effect on the next tick.

        A positive `shock_intensity` sets the current shock level once and is
        not kept in the stored parameters.
        """
        params = clamp_params(params, self._config.ranges)
        if params.shock_intensity > 0:
            self._state.shock_intensity = params.shock_intensity
        self._params = replace(params, shock_intensity=0.0)
        logger.info("Parameters replaced at tick %d", self._state.tick)
        return self._params

    def update_params(self, **changes: Any) -> SimulationParams:
        return self.configure(self._params.with_changes(**changes))

    def reroll_spins(self, ratio: float) -> None:
        self._params = clamp_params(self._params.with_changes(spin_ratio=ratio), self._config.ranges)
        for agent in self._state.agents:
            agent.spin = self._rng.next_spin(self._params.spin_ratio)

    def trigger_shock(self) -> None:
        trigger_shock(self._state)
        logger.info("Shock triggered at tick %d", self._state.tick)

    def cycle_spin_rule(self) -> SpinRule:
        rule = SpinRule(int(self._params.spin_rule)).next()
        self._params = replace(self._params, spin_rule=rule)
        return rule

    def toggle_momentum(self) -> bool:
        self._params = replace(self._params, conserve_momentum=not self._params.conserve_momentum)
        return self._params.conserve_momentum

    def reset(self) -> None:
        self._rng.reset()
        self._params = replace(
            self._params,
            shock_intensity=0.0,
            spin_rule=SpinRule.OPPOSITE,
            spin_ratio=0.5,
            openness=1.0,
            conserve_momentum=True,
            friction=0.02,
        )
        self._state = self._bootstrap()
        logger.info("World reset")

    def snapshot(self) -> Snapshot:
        state = self._state
        return Snapshot(
            tick=state.tick,
            metrics=state.metrics,
            agents=[self._agent_snapshot(agent) for agent in state.agents],
            foods=[
                {"id": food.id, "x": food.position.x, "y": food.position.y, "value": food.value, "kind": food.kind.value}
                for food in state.foods
            ],
            corpses=[
                {
                    "x": corpse.position.x,
                    "y": corpse.position.y,
                    "vx": corpse.velocity.x,
                    "vy": corpse.velocity.y,
                    "energy": corpse.energy,
                    "decay_timer": corpse.decay_timer,
                }
                for corpse in state.corpses
            ],
            ripples=[
                {
                    "x": ripple.position.x,
                    "y": ripple.position.y,
                    "radius": ripple.radius,
                    "max_radius": ripple.max_radius,
                    "alpha": ripple.alpha,
                    "color": ripple.color,
                }
                for ripple in state.ripples
            ],
            forces={agent_id: self._forces_snapshot(forces) for agent_id, forces in state.forces.items()},
            world=SnapshotWorld(width=state.width, height=state.height),
            metadata=SnapshotMetadata(
                seed=self._rng.seed,
                config_version=self._config.config_version,
                shock_intensity=state.shock_intensity,
                spin_rule=int(self._params.spin_rule),
            ),
        )

    def _bootstrap(self) -> SimulationState:
        return initialize(
            self._config.width,
            self._config.height,
            self._config.initial_agents,
            self._config.initial_food,
            self._params,
            self._rng,
        )

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.velocity.length(),
            "omega": agent.omega,
            "energy": agent.energy,
            "radius": agent.radius,
            "spin": agent.spin,
            "age": agent.age,
            "generation": agent.generation,
        }

    @staticmethod
    def _forces_snapshot(forces: AgentForces) -> Dict[str, Tuple[float, float]]:
        return {
            "appetite": (forces.appetite.x, forces.appetite.y),
            "exploration": (forces.exploration.x, forces.exploration.y),
            "net": (forces.net.x, forces.net.y),
        }
