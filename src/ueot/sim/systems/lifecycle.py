from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, List

from pygame.math import Vector2

from ..core.config import MAX_AGENTS, MAX_FOOD, SimulationParams
from ..core.entities import DEAD_OMEGA, MAX_OMEGA, Agent, Corpse, FoodKind, FoodParticle, Ripple
from ..core.rng import RandomSource
from ..utils.math2d import wrap_position
from .integration import drift
from .interactions import NeighborSummary

if TYPE_CHECKING:
    from ..core.state import SimulationState

logger = logging.getLogger(__name__)

OPEN_SYSTEM_THRESHOLD = 0.01
BASE_DAMAGE = 0.02
SPEED_DAMAGE = 0.01
HIERARCHY_DAMAGE = 0.6
SHOCK_DAMAGE = 0.2
SHOCK_RIGIDITY_GAIN = 5.0
BASE_BURN = 0.02
SPEED_BURN = 0.02
FEED_REACH = 2.0
HEAL_ENERGY = 40.0
HEAL_AMOUNT = 15.0
STARVATION_ENERGY = -20.0
CORPSE_ENERGY_OFFSET = 20.0
CORPSE_MIN_ENERGY = 10.0
CORPSE_TIMER_MIN = 60.0
CORPSE_TIMER_SPAN = 40.0
CORPSE_VANISH_ENERGY = 5.0
DECAY_FOOD_JITTER = 5.0
DEATH_RIPPLE_ENERGY = 60.0
DEATH_RIPPLE_MAX_RADIUS = 80.0
CROWD_COST = 10.0
CHILD_SHARE = 0.4
PARENT_SHARE = 0.6
REGEN_SCALE = 0.01
RIPPLE_GROWTH = 2.0
RIPPLE_FADE = 0.03
DEATH_RIPPLE_COLOR = "#ef4444"
BIRTH_RIPPLE_COLOR = "#fff"


def integrity_damage(speed: float, rho_prev: float, params: SimulationParams, shock: float) -> float:
    openness = params.openness
    damage = BASE_DAMAGE * openness
    damage += speed * SPEED_DAMAGE * openness
    damage += rho_prev * rho_prev * params.hierarchy_str * HIERARCHY_DAMAGE * openness
    if shock > 0:
        damage += shock * (1.0 + params.rigidity * SHOCK_RIGIDITY_GAIN) * SHOCK_DAMAGE
    return damage


def energy_burn(speed: float, radius: float, params: SimulationParams) -> float:
    mass_factor = radius / 4.0
    return (BASE_BURN * params.metabolism * mass_factor + speed * SPEED_BURN * params.metabolism) * params.openness


def kill_agent(state: SimulationState, agent: Agent, rng: RandomSource) -> Corpse:
    corpse = Corpse(
        position=Vector2(agent.position),
        velocity=Vector2(agent.velocity),
        energy=max(CORPSE_MIN_ENERGY, agent.energy + CORPSE_ENERGY_OFFSET),
        decay_timer=CORPSE_TIMER_MIN + rng.next_float() * CORPSE_TIMER_SPAN,
    )
    state.corpses.append(corpse)
    if agent.energy > DEATH_RIPPLE_ENERGY:
        state.emit_ripple(
            Ripple(
                position=Vector2(agent.position),
                max_radius=min(agent.energy, DEATH_RIPPLE_MAX_RADIUS),
                alpha=0.7,
                color=DEATH_RIPPLE_COLOR,
            )
        )
    agent.omega = DEAD_OMEGA
    return corpse


def spawn_food(
    state: SimulationState, position: Vector2, value: float, kind: FoodKind, pending: List[FoodParticle]
) -> FoodParticle | None:
    if len(state.foods) + len(pending) >= MAX_FOOD:
        logger.debug("Food cap reached, dropping %s food", kind.value)
        return None
    food = FoodParticle(id=state.allocate_id(), position=position, value=value, kind=kind)
    pending.append(food)
    return food


def tick_corpses(
    state: SimulationState, params: SimulationParams, rng: RandomSource, pending_food: List[FoodParticle]
) -> None:
    survivors: List[Corpse] = []
    for corpse in state.corpses:
        corpse.decay_timer -= 1
        drift(corpse.position, corpse.velocity, params.friction, state.width, state.height)
        if corpse.decay_timer > 0:
            survivors.append(corpse)
            continue
        if corpse.energy > CORPSE_VANISH_ENERGY:
            x, y = wrap_position(
                corpse.position.x + rng.next_centered() * DECAY_FOOD_JITTER,
                corpse.position.y + rng.next_centered() * DECAY_FOOD_JITTER,
                state.width,
                state.height,
            )
            spawn_food(state, Vector2(x, y), corpse.energy * params.decay_entropy, FoodKind.DECAY, pending_food)
    state.corpses = survivors


def regenerate_food(
    state: SimulationState, params: SimulationParams, rng: RandomSource, pending_food: List[FoodParticle]
) -> int:
    expected = REGEN_SCALE * params.food_regen
    whole = math.floor(expected)
    count = int(whole) + (1 if rng.next_float() < expected - whole else 0)
    spawned = 0
    for _ in range(count):
        position = rng.next_position(state.width, state.height)
        if spawn_food(state, position, params.food_value, FoodKind.AMBIENT, pending_food) is not None:
            spawned += 1
    return spawned


def apply_life_cycle(
    state: SimulationState,
    agent: Agent,
    summary: NeighborSummary,
    speed: float,
    params: SimulationParams,
    rng: RandomSource,
    shock: float,
    rho_prev: float,
    population: int,
    births: List[Agent],
) -> bool:
    """Decay, feed, kill or reproduce one agent. Returns True when it died."""
    openness = params.openness
    radius = agent.radius
    agent.omega -= integrity_damage(speed, rho_prev, params, shock)
    agent.energy -= energy_burn(speed, radius, params)

    food = summary.nearest_food
    if (
        openness > OPEN_SYSTEM_THRESHOLD
        and food is not None
        and summary.nearest_food_dist < radius + FEED_REACH
        and not food.eaten
    ):
        agent.energy += food.value
        food.eaten = True
        if agent.energy > HEAL_ENERGY:
            agent.omega = min(MAX_OMEGA, agent.omega + HEAL_AMOUNT)

    if agent.energy <= STARVATION_ENERGY or agent.omega <= 0:
        kill_agent(state, agent, rng)
        return True

    threshold = params.repro_threshold + summary.neighbors * CROWD_COST
    if openness > OPEN_SYSTEM_THRESHOLD and agent.energy > threshold:
        if population + len(births) >= MAX_AGENTS:
            logger.debug("Population cap reached, agent %s does not reproduce", agent.id)
            return False
        child_energy = agent.energy * CHILD_SHARE
        agent.energy *= PARENT_SHARE
        child = Agent(
            id=state.allocate_id(),
            position=Vector2(agent.position),
            velocity=Vector2(
                agent.velocity.x - rng.next_centered(),
                agent.velocity.y - rng.next_centered(),
            ),
            energy=child_energy,
            spin=agent.spin,
            wander_angle=rng.next_angle(),
            generation=agent.generation + 1,
        )
        births.append(child)
        state.emit_ripple(
            Ripple(position=Vector2(agent.position), max_radius=20.0, alpha=0.4, color=BIRTH_RIPPLE_COLOR)
        )
    return False


def age_ripples(state: SimulationState) -> None:
    for ripple in state.ripples:
        ripple.radius += RIPPLE_GROWTH
        ripple.alpha -= RIPPLE_FADE
    state.ripples = [ripple for ripple in state.ripples if not ripple.faded]
