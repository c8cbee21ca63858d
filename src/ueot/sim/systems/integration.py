from __future__ import annotations

import logging
import math

from pygame.math import Vector2

from ..core.config import SimulationParams
from ..core.entities import Agent, AgentForces
from ..core.rng import RandomSource
from ..utils.math2d import EPSILON, _is_finite_xy, wrap_position
from .interactions import NeighborSummary

logger = logging.getLogger(__name__)

DEPLETED_ENERGY = 1.0
DEPLETED_DAMPING = 0.8
APPETITE_MIN_BIAS = 0.01
APPETITE_GAIN = 0.2
EXPLORATION_MIN_BIAS = 0.1
EXPLORATION_GAIN = 0.1
FLEE_GAIN = 2.0
COMPETITION_THRESHOLD = 0.5
FEAR_THRESHOLD = 0.5
FEAR_ENERGY_SCALE = 200.0
WANDER_DRIFT = 0.5
LOW_ENERGY = 30.0
LOW_ENERGY_BIAS = 8.0
LOW_ENERGY_ATTENUATION = 0.1
STARVING_BOOST = 2.0
COUPLING_GAIN = 0.08
BASE_SPEED_LIMIT = 4.0
SPEED_LIMIT_PER_BIAS = 0.5


def speed_limit(params: SimulationParams) -> float:
    return BASE_SPEED_LIMIT + params.pi_bias * SPEED_LIMIT_PER_BIAS


def appetite(agent: Agent, summary: NeighborSummary, params: SimulationParams) -> tuple[float, float]:
    food = summary.nearest_food
    if params.pi_bias <= APPETITE_MIN_BIAS or food is None:
        return 0.0, 0.0
    strength = params.pi_bias * APPETITE_GAIN
    dist = max(summary.nearest_food_dist, EPSILON)
    return (
        (food.position.x - agent.position.x) / dist * strength,
        (food.position.y - agent.position.y) / dist * strength,
    )


def exploration(
    agent: Agent, summary: NeighborSummary, params: SimulationParams, rng: RandomSource
) -> tuple[float, float]:
    """Flee along the repulsion field when crowded and hungry, otherwise wander."""
    if params.phi_bias <= EXPLORATION_MIN_BIAS:
        return 0.0, 0.0
    competition = summary.neighbors / (summary.visible_food + 1)
    fear = max(0.0, 1.0 - agent.energy / FEAR_ENERGY_SCALE)
    base = params.phi_bias * EXPLORATION_GAIN
    if competition > COMPETITION_THRESHOLD and fear > FEAR_THRESHOLD:
        return summary.repel_x * base * FLEE_GAIN, summary.repel_y * base * FLEE_GAIN
    agent.wander_angle += rng.next_centered() * WANDER_DRIFT
    phi_x = math.cos(agent.wander_angle) * base
    phi_y = math.sin(agent.wander_angle) * base
    if agent.energy < LOW_ENERGY and params.phi_bias < LOW_ENERGY_BIAS:
        phi_x *= LOW_ENERGY_ATTENUATION
        phi_y *= LOW_ENERGY_ATTENUATION
    if summary.nearest_food is None:
        phi_x *= STARVING_BOOST
        phi_y *= STARVING_BOOST
    return phi_x, phi_y


def coupling(summary: NeighborSummary, params: SimulationParams) -> tuple[float, float]:
    if summary.neighbors <= 0:
        return 0.0, 0.0
    strength = params.coupling * COUPLING_GAIN
    return summary.align_x / summary.neighbors * strength, summary.align_y / summary.neighbors * strength


def integrate_agent(
    agent: Agent,
    summary: NeighborSummary,
    params: SimulationParams,
    rng: RandomSource,
    shock: float,
    width: float,
    height: float,
) -> tuple[float, AgentForces]:
    """Advance one agent by a tick and return its pre-clamp speed and force breakdown."""
    forces = AgentForces()
    if agent.energy > DEPLETED_ENERGY:
        pi_x, pi_y = appetite(agent, summary, params)
        phi_x, phi_y = exploration(agent, summary, params, rng)
        c_x, c_y = coupling(summary, params)
        accel_x = pi_x + phi_x + c_x + summary.spin_x
        accel_y = pi_y + phi_y + c_y + summary.spin_y
        if shock > 0:
            accel_x += rng.next_centered() * shock
            accel_y += rng.next_centered() * shock
        forces.appetite.update(pi_x, pi_y)
        forces.exploration.update(phi_x, phi_y)
    else:
        accel_x = summary.spin_x
        accel_y = summary.spin_y
        if not params.conserve_momentum:
            agent.velocity *= DEPLETED_DAMPING

    if not _is_finite_xy(accel_x, accel_y):
        logger.debug("Dropping non-finite acceleration for agent %s", agent.id)
        accel_x = accel_y = 0.0
        forces = AgentForces()
    forces.net.update(accel_x, accel_y)

    vel_x = agent.velocity.x + accel_x
    vel_y = agent.velocity.y + accel_y
    speed = math.hypot(vel_x, vel_y)
    limit = speed_limit(params)
    if speed > limit:
        vel_x = vel_x / speed * limit
        vel_y = vel_y / speed * limit
    friction_factor = 1.0 - params.friction
    vel_x *= friction_factor
    vel_y *= friction_factor
    agent.velocity.update(vel_x, vel_y)
    pos_x, pos_y = wrap_position(agent.position.x + vel_x, agent.position.y + vel_y, width, height)
    agent.position.update(pos_x, pos_y)
    agent.age += 1
    return speed, forces


def drift(position: Vector2, velocity: Vector2, friction: float, width: float, height: float) -> None:
    """Passive motion shared by corpses: move, damp, wrap."""
    pos_x, pos_y = wrap_position(position.x + velocity.x, position.y + velocity.y, width, height)
    position.update(pos_x, pos_y)
    velocity *= 1.0 - friction
