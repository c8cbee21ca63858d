from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from ueot.sim.core.config import SimulationParams, SpinRule
from ueot.sim.core.entities import Agent, FoodParticle
from ueot.sim.systems.interactions import (
    InteractionScratch,
    apply_impulses,
    collision_impulses,
    spin_interaction,
    summarize_neighbors,
)


def _make_agent(agent_id: int, x: float, y: float, spin: int = 1, energy: float = 0.0, vx: float = 0.0) -> Agent:
    return Agent(
        id=agent_id,
        position=Vector2(x, y),
        velocity=Vector2(vx, 0.0),
        energy=energy,
        spin=spin,
    )


def test_collision_impulse_is_capped_and_symmetric():
    a = _make_agent(1, 100.0, 100.0, energy=100.0)
    b = _make_agent(2, 101.0, 100.0, energy=100.0)
    params = SimulationParams(spin_force=2.0, spin_rule=SpinRule.OPPOSITE)

    deltas = collision_impulses([a, b], params)

    assert deltas[0].x == approx(-4.0)
    assert deltas[1].x == approx(4.0)
    assert deltas[0].y == approx(0.0)
    assert deltas[0] + deltas[1] == Vector2(0.0, 0.0)


def test_collision_spring_below_cap():
    # radius 4 each, overlap 7
    a = _make_agent(1, 10.0, 10.0)
    b = _make_agent(2, 11.0, 10.0)

    deltas = collision_impulses([a, b], SimulationParams())

    assert deltas[0].x == approx(-3.5)
    assert deltas[1].x == approx(3.5)


def test_like_rule_adds_same_spin_push():
    a = _make_agent(1, 100.0, 100.0, energy=100.0)
    b = _make_agent(2, 101.0, 100.0, energy=100.0)
    params = SimulationParams(spin_force=2.0, spin_rule=SpinRule.LIKE)

    deltas = collision_impulses([a, b], params)
    assert deltas[0].x == approx(-5.0)

    b.spin = -1
    deltas = collision_impulses([a, b], params)
    assert deltas[0].x == approx(-4.0)


def test_separated_agents_get_no_impulse():
    a = _make_agent(1, 0.0, 0.0)
    b = _make_agent(2, 8.0, 0.0)

    deltas = collision_impulses([a, b], SimulationParams())

    assert deltas[0] == Vector2()
    assert deltas[1] == Vector2()


def test_coincident_agents_use_fallback_distance():
    a = _make_agent(1, 5.0, 5.0)
    b = _make_agent(2, 5.0, 5.0)

    deltas = collision_impulses([a, b], SimulationParams())

    # zero offset gives a zero normal, but nothing blows up
    assert deltas[0] == Vector2()
    assert deltas[1] == Vector2()


def test_apply_impulses_adds_deltas():
    a = _make_agent(1, 0.0, 0.0, vx=1.0)
    apply_impulses([a], [Vector2(0.5, -2.0)])
    assert a.velocity == Vector2(1.5, -2.0)


def test_spin_interaction_attracts_with_orbit_share():
    a = _make_agent(1, 0.0, 0.0)
    b = _make_agent(2, 10.0, 0.0)
    params = SimulationParams(spin_force=1.0, spin_rule=SpinRule.LIKE)

    fx, fy = spin_interaction(a, b, 10.0, params)

    decay = (1.0 - 10.0 / 80.0) ** 2
    strength = decay * 0.5
    assert fx == approx(10.0 / 15.0 * strength)
    assert fy == approx(10.0 / 15.0 * strength * 0.3)


def test_spin_interaction_repels_opposite_spins_under_like_rule():
    a = _make_agent(1, 0.0, 0.0, spin=1)
    b = _make_agent(2, 10.0, 0.0, spin=-1)
    params = SimulationParams(spin_force=1.0, spin_rule=SpinRule.LIKE)

    fx, fy = spin_interaction(a, b, 10.0, params)

    strength = (1.0 - 10.0 / 80.0) ** 2 * 0.5
    assert fx == approx(-10.0 / 15.0 * strength * 1.2)
    assert fy == approx(0.0)


def test_spin_interaction_disabled():
    a = _make_agent(1, 0.0, 0.0)
    b = _make_agent(2, 10.0, 0.0)
    assert spin_interaction(a, b, 10.0, SimulationParams(spin_rule=SpinRule.NONE)) == (0.0, 0.0)
    assert spin_interaction(a, b, 10.0, SimulationParams(spin_force=0.0)) == (0.0, 0.0)


def test_summary_tracks_nearest_food_and_neighbours():
    a = _make_agent(1, 100.0, 100.0)
    b = _make_agent(2, 105.0, 100.0, vx=2.0)
    far = _make_agent(3, 300.0, 100.0, vx=9.0)
    near_food = FoodParticle(id=10, position=Vector2(110.0, 100.0), value=30.0)
    far_food = FoodParticle(id=11, position=Vector2(100.0, 150.0), value=30.0)
    params = SimulationParams(spin_rule=SpinRule.NONE)

    summaries = summarize_neighbors([a, b, far], [far_food, near_food], params, InteractionScratch())
    summary = summaries[0]

    assert summary.nearest_food is near_food
    assert summary.nearest_food_dist == approx(10.0)
    assert summary.visible_food == 2
    assert summary.neighbors == 1
    assert summary.align_x == approx(2.0)
    # b is inside personal space (10 + radius 4)
    assert summary.repel_x == approx(-5.0 / 5.1)
    assert summary.spin_x == 0.0
    assert summaries[2].neighbors == 0


def test_summary_does_not_mutate_agents():
    a = _make_agent(1, 100.0, 100.0, vx=1.0)
    b = _make_agent(2, 103.0, 100.0, vx=-1.0)

    summarize_neighbors([a, b], [], SimulationParams(), InteractionScratch())

    assert a.velocity == Vector2(1.0, 0.0)
    assert b.velocity == Vector2(-1.0, 0.0)
    assert a.position == Vector2(100.0, 100.0)
