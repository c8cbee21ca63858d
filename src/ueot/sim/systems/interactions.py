from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from pygame.math import Vector2

from ..core.config import SimulationParams, SpinRule
from ..core.entities import Agent, FoodParticle
from ..core.spatial_grid import SpatialGrid

VISION_RADIUS_SQ = 50000.0
INTERACTION_RADIUS = 80.0
INTERACTION_RADIUS_SQ = INTERACTION_RADIUS * INTERACTION_RADIUS
PERSONAL_SPACE = 10.0
REPEL_EPSILON = 0.1
SPRING_GAIN = 0.5
SPRING_CAP = 4.0
ZERO_DISTANCE = 0.1
SPIN_DISTANCE_SOFTENING = 5.0
SPIN_STRENGTH_SCALE = 0.5
SPIN_ORBIT_SHARE = 0.3
SPIN_REPEL_SHARE = 1.2
GRID_CELL_SIZE = INTERACTION_RADIUS


@dataclass(slots=True)
class NeighborSummary:
    nearest_food: Optional[FoodParticle] = None
    nearest_food_dist: float = math.inf
    visible_food: int = 0
    neighbors: int = 0
    align_x: float = 0.0
    align_y: float = 0.0
    repel_x: float = 0.0
    repel_y: float = 0.0
    spin_x: float = 0.0
    spin_y: float = 0.0


@dataclass
class InteractionScratch:
    """Reusable grids and buffers for the neighbour queries of one world."""

    agent_grid: SpatialGrid[Agent] = field(default_factory=lambda: SpatialGrid(GRID_CELL_SIZE))
    food_grid: SpatialGrid[FoodParticle] = field(default_factory=lambda: SpatialGrid(GRID_CELL_SIZE))
    neighbor_items: List[Agent] = field(default_factory=list)
    neighbor_dist_sq: List[float] = field(default_factory=list)
    food_items: List[FoodParticle] = field(default_factory=list)
    food_dist_sq: List[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.agent_offsets = self.agent_grid.build_neighbor_cell_offsets(INTERACTION_RADIUS)
        self.food_offsets = self.food_grid.build_neighbor_cell_offsets(math.sqrt(VISION_RADIUS_SQ))


def spin_interaction(
    agent: Agent, other: Agent, distance: float, params: SimulationParams
) -> tuple[float, float]:
    """Chirality force exerted on `agent` by `other` at the given distance."""
    if params.spin_force <= 0 or params.spin_rule == SpinRule.NONE:
        return 0.0, 0.0
    interaction = agent.spin * other.spin * int(params.spin_rule)
    dir_x = other.position.x - agent.position.x
    dir_y = other.position.y - agent.position.y
    dist_norm = distance + SPIN_DISTANCE_SOFTENING
    decay = max(0.0, 1.0 - distance / INTERACTION_RADIUS)
    decay = decay * decay
    strength = params.spin_force * decay * SPIN_STRENGTH_SCALE
    unit_x = dir_x / dist_norm
    unit_y = dir_y / dist_norm
    if interaction > 0:
        # attraction with a tangential share so bound pairs orbit
        force_x = unit_x * strength - unit_y * strength * SPIN_ORBIT_SHARE
        force_y = unit_y * strength + unit_x * strength * SPIN_ORBIT_SHARE
        return force_x, force_y
    return -unit_x * strength * SPIN_REPEL_SHARE, -unit_y * strength * SPIN_REPEL_SHARE


def collision_impulses(agents: Sequence[Agent], params: SimulationParams) -> List[Vector2]:
    """Spring impulses for every overlapping unordered pair, one delta per agent."""
    deltas = [Vector2() for _ in agents]
    like_repel = params.spin_rule == SpinRule.LIKE
    extra = params.spin_force * 0.5
    radii = [agent.radius for agent in agents]
    count = len(agents)
    for i in range(count):
        a = agents[i]
        ax = a.position.x
        ay = a.position.y
        radius_a = radii[i]
        for j in range(i + 1, count):
            b = agents[j]
            dx = b.position.x - ax
            dy = b.position.y - ay
            dist_sq = dx * dx + dy * dy
            min_dist = radius_a + radii[j]
            if dist_sq >= min_dist * min_dist:
                continue
            dist = math.sqrt(dist_sq) or ZERO_DISTANCE
            overlap = min_dist - dist
            force = min(overlap * SPRING_GAIN, SPRING_CAP)
            if like_repel and a.spin == b.spin:
                force += extra
            nx = dx / dist
            ny = dy / dist
            deltas[i].x -= nx * force
            deltas[i].y -= ny * force
            deltas[j].x += nx * force
            deltas[j].y += ny * force
    return deltas


def apply_impulses(agents: Sequence[Agent], deltas: Sequence[Vector2]) -> None:
    for agent, delta in zip(agents, deltas):
        agent.velocity.x += delta.x
        agent.velocity.y += delta.y


def summarize_neighbors(
    agents: Sequence[Agent],
    foods: Sequence[FoodParticle],
    params: SimulationParams,
    scratch: InteractionScratch,
) -> List[NeighborSummary]:
    """Read-only scan producing one summary per agent; nothing is mutated."""
    agent_grid = scratch.agent_grid
    food_grid = scratch.food_grid
    agent_grid.rebuild(list(agents))
    food_grid.rebuild(list(foods))
    neighbor_items = scratch.neighbor_items
    neighbor_dist_sq = scratch.neighbor_dist_sq
    food_items = scratch.food_items
    food_dist_sq = scratch.food_dist_sq
    spin_active = params.spin_force > 0 and params.spin_rule != SpinRule.NONE

    summaries: List[NeighborSummary] = []
    for agent in agents:
        summary = NeighborSummary()

        food_grid.collect_within(agent.position, scratch.food_offsets, VISION_RADIUS_SQ, food_items, food_dist_sq)
        summary.visible_food = len(food_items)
        best_sq = math.inf
        for food, dist_sq in zip(food_items, food_dist_sq):
            if dist_sq < best_sq:
                best_sq = dist_sq
                summary.nearest_food = food
        if summary.nearest_food is not None:
            summary.nearest_food_dist = math.sqrt(best_sq)

        agent_grid.collect_within(
            agent.position, scratch.agent_offsets, INTERACTION_RADIUS_SQ, neighbor_items, neighbor_dist_sq
        )
        personal_space = PERSONAL_SPACE + agent.radius
        for other, dist_sq in zip(neighbor_items, neighbor_dist_sq):
            if other is agent:
                continue
            dist = math.sqrt(dist_sq)
            if dist < personal_space:
                summary.repel_x += (agent.position.x - other.position.x) / (dist + REPEL_EPSILON)
                summary.repel_y += (agent.position.y - other.position.y) / (dist + REPEL_EPSILON)
            if spin_active:
                force_x, force_y = spin_interaction(agent, other, dist, params)
                summary.spin_x += force_x
                summary.spin_y += force_y
            summary.align_x += other.velocity.x
            summary.align_y += other.velocity.y
            summary.neighbors += 1
        summaries.append(summary)
    return summaries
