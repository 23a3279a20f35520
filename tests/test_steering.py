import math

import pytest

from alife_sim.agents.steering import steer, steer_with_social
from alife_sim.memory.social_memory import DangerZone, ResourceTip
from alife_sim.utils.types import (
    ActionType,
    AgentKind,
    HealthStatus,
    Intent,
    Location,
    Resource,
    Vec3,
)


def _active(make_agent, *args, **kwargs):
    agent = make_agent(*args, **kwargs)
    agent.is_active = True
    return agent


def _food(environment, rid: str, x: float, z: float) -> None:
    environment.resources[rid] = Resource(rid, Location(x, z), 20.0, 0.5)


def test_forage_adds_toward_nearest_resource(make_agent, environment, scripted):
    _food(environment, "far", 10.0, 0.0)
    _food(environment, "near", 3.0, 4.0)
    agent = _active(make_agent, speed=2.0)
    agent.velocity = Vec3(1.0, 0.0, 0.5)

    steer(agent, Intent(ActionType.FORAGE, 1.0), environment, [agent], scripted())
    assert agent.velocity.x == pytest.approx(1.0 + 0.6 * 2.0)
    assert agent.velocity.z == pytest.approx(0.5 + 0.8 * 2.0)


def test_intent_speed_is_clamped(make_agent, environment, scripted):
    _food(environment, "r", 0.0, 5.0)
    agent = _active(make_agent, speed=1.5)
    steer(agent, Intent(ActionType.FORAGE, 3.0), environment, [agent], scripted())
    assert agent.velocity.z == pytest.approx(1.5)

    still = _active(make_agent, "b")
    steer(still, Intent(ActionType.FORAGE, -1.0), environment, [still], scripted())
    assert (still.velocity.x, still.velocity.z) == (0.0, 0.0)


def test_forage_without_resources_leaves_velocity(make_agent, environment, scripted):
    agent = _active(make_agent)
    agent.velocity = Vec3(0.2, 0.0, -0.1)
    steer(agent, Intent(ActionType.FORAGE, 1.0), environment, [agent], scripted())
    assert (agent.velocity.x, agent.velocity.z) == (0.2, -0.1)


def test_inactive_agents_do_not_steer(make_agent, environment, scripted):
    basic = make_agent("rl_0")
    causal = make_agent("causal_0", AgentKind.CAUSAL)
    for agent, fn in ((basic, steer), (causal, steer_with_social)):
        rng = scripted([0.25])
        fn(agent, Intent(ActionType.EXPLORE, 1.0), environment, [agent], rng)
        assert (agent.velocity.x, agent.velocity.z) == (0.0, 0.0)
        assert rng.values == [0.25]


def test_basic_flee_from_nearest_infected(make_agent, environment, scripted):
    agent = _active(make_agent)
    near = make_agent("sick_near", z=3.0, status=HealthStatus.INFECTED)
    far = make_agent("sick_far", x=6.0, status=HealthStatus.INFECTED)
    steer(agent, Intent(ActionType.FLEE, 1.0), environment, [agent, far, near], scripted())
    assert agent.velocity.x == pytest.approx(0.0)
    assert agent.velocity.z == pytest.approx(-1.0)


def test_flee_ignores_infected_out_of_range(make_agent, environment, scripted):
    agent = _active(make_agent)
    edge = make_agent("sick", x=10.0, status=HealthStatus.INFECTED)
    healthy = make_agent("well", x=1.0)
    steer(agent, Intent(ActionType.FLEE, 1.0), environment, [agent, edge, healthy], scripted())
    assert (agent.velocity.x, agent.velocity.z) == (0.0, 0.0)


def test_explore_heading_is_scaled(make_agent, environment, scripted):
    agent = _active(make_agent, speed=2.0)
    steer(agent, Intent(ActionType.EXPLORE, 1.0), environment, [agent], scripted([0.25]))
    assert agent.velocity.x == pytest.approx(0.0, abs=1e-12)
    assert agent.velocity.z == pytest.approx(2.0 * 0.7)


def test_reproduce_only_jitters(make_agent, environment, scripted):
    _food(environment, "r", 5.0, 0.0)
    agent = _active(make_agent)
    rng = scripted([0.9, 0.1])
    steer(agent, Intent(ActionType.REPRODUCE, 1.0), environment, [agent], rng)
    assert agent.velocity.x == pytest.approx(0.4 * 0.3)
    assert agent.velocity.z == pytest.approx(-0.4 * 0.3)
    assert rng.values == []


def test_hungry_causal_heads_for_best_tip(make_agent, environment, scripted):
    _food(environment, "r", 3.0, 0.0)
    hungry = _active(make_agent, "causal_0", AgentKind.CAUSAL, energy=30.0, age=100)
    hungry.causal.known_resource_locations.extend([
        ResourceTip(location=Location(0.0, -5.0), received_at=90, source="x"),
        ResourceTip(location=Location(-5.0, 0.0), received_at=0, source="y"),
    ])
    steer_with_social(hungry, Intent(ActionType.FORAGE, 1.0), environment, [hungry], scripted())
    assert hungry.velocity.x == pytest.approx(0.0)
    assert hungry.velocity.z == pytest.approx(-1.0)


def test_fed_causal_ignores_tips(make_agent, environment, scripted):
    _food(environment, "r", 3.0, 0.0)
    fed = _active(make_agent, "causal_0", AgentKind.CAUSAL, energy=40.0)
    fed.causal.known_resource_locations.append(
        ResourceTip(location=Location(0.0, -5.0), received_at=0, source="x")
    )
    steer_with_social(fed, Intent(ActionType.FORAGE, 1.0), environment, [fed], scripted())
    assert fed.velocity.x == pytest.approx(1.0)
    assert fed.velocity.z == pytest.approx(0.0)


def test_hungry_causal_without_tips_uses_nearest(make_agent, environment, scripted):
    _food(environment, "r", 0.0, 2.0)
    agent = _active(make_agent, "causal_0", AgentKind.CAUSAL, energy=10.0)
    steer_with_social(agent, Intent(ActionType.FORAGE, 1.0), environment, [agent], scripted())
    assert agent.velocity.z == pytest.approx(1.0)


def test_flee_sums_nearby_danger_zones(make_agent, environment, scripted):
    agent = _active(make_agent, "causal_0", AgentKind.CAUSAL)
    agent.causal.danger_zones.extend([
        DangerZone(location=Location(-3.0, 0.0), received_at=0, source="x"),
        DangerZone(location=Location(0.0, -4.0), received_at=0, source="y"),
        DangerZone(location=Location(30.0, 0.0), received_at=0, source="z"),
    ])
    sick = make_agent("sick", z=2.0, status=HealthStatus.INFECTED)
    steer_with_social(agent, Intent(ActionType.FLEE, 1.0), environment, [agent, sick], scripted())
    assert agent.velocity.x == pytest.approx(math.sqrt(0.5))
    assert agent.velocity.z == pytest.approx(math.sqrt(0.5))


def test_flee_falls_back_to_infected_when_zones_are_far(make_agent, environment, scripted):
    agent = _active(make_agent, "causal_0", AgentKind.CAUSAL)
    agent.causal.danger_zones.append(
        DangerZone(location=Location(0.0, 10.0), received_at=0, source="x")
    )
    sick = make_agent("sick", x=-4.0, status=HealthStatus.INFECTED)
    steer_with_social(agent, Intent(ActionType.FLEE, 1.0), environment, [agent, sick], scripted())
    assert agent.velocity.x == pytest.approx(1.0)
    assert agent.velocity.z == pytest.approx(0.0)


def test_social_explore_and_reproduce_match_basic(make_agent, environment, scripted):
    explorer = _active(make_agent, "causal_0", AgentKind.CAUSAL)
    steer_with_social(explorer, Intent(ActionType.EXPLORE, 1.0), environment, [explorer], scripted([0.5]))
    assert explorer.velocity.x == pytest.approx(-0.7)
    assert explorer.velocity.z == pytest.approx(0.0, abs=1e-12)

    parent = _active(make_agent, "causal_1", AgentKind.CAUSAL)
    steer_with_social(parent, Intent(ActionType.REPRODUCE, 1.0), environment, [parent], scripted([0.0, 1.0]))
    assert parent.velocity.x == pytest.approx(-0.15)
    assert parent.velocity.z == pytest.approx(0.15)
