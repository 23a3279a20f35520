from __future__ import annotations

import math
import random
from typing import Iterable

from alife_sim.agents.core import Agent
from alife_sim.agents.messaging import best_resource_tip
from alife_sim.utils.types import ActionType, HealthStatus, Intent, Location
from alife_sim.world.environment import Environment

DAMPING = 0.8
RESTITUTION = -0.5
FLEE_RADIUS = 10.0
EXPLORE_SCALE = 0.7
JITTER_SCALE = 0.3
HUNGRY_ENERGY = 40.0
ARRIVAL_RADIUS = 0.5


def intent_speed(agent: Agent, intent: Intent) -> float:
    return max(0.0, min(1.0, intent.speed)) * agent.phenotype.max_speed


def _push(agent: Agent, dx: float, dz: float, speed: float) -> None:
    mag = math.hypot(dx, dz) or 1.0
    agent.velocity.x += (dx / mag) * speed
    agent.velocity.z += (dz / mag) * speed


def _nearest_infected(agent: Agent, agents: Iterable[Agent]) -> tuple[Agent, float] | None:
    nearest: tuple[Agent, float] | None = None
    for other in agents:
        if other.id == agent.id or other.status is not HealthStatus.INFECTED:
            continue
        d = agent.distance_to(other)
        if nearest is None or d < nearest[1]:
            nearest = (other, d)
    return nearest


def _flee_from_infected(agent: Agent, agents: Iterable[Agent]) -> tuple[float, float]:
    threat = _nearest_infected(agent, agents)
    if threat is None or threat[1] >= FLEE_RADIUS:
        return 0.0, 0.0
    other = threat[0]
    return agent.position.x - other.position.x, agent.position.z - other.position.z


def _wander(agent: Agent, intent: Intent, speed: float, rng: random.Random) -> None:
    if intent.action is ActionType.EXPLORE:
        heading = rng.random() * math.pi * 2
        agent.velocity.x += math.cos(heading) * speed * EXPLORE_SCALE
        agent.velocity.z += math.sin(heading) * speed * EXPLORE_SCALE
    elif intent.action is ActionType.REPRODUCE:
        agent.velocity.x += (rng.random() - 0.5) * speed * JITTER_SCALE
        agent.velocity.z += (rng.random() - 0.5) * speed * JITTER_SCALE


def steer(
    agent: Agent,
    intent: Intent,
    env: Environment,
    agents: Iterable[Agent],
    rng: random.Random,
) -> None:
    """Add the intent's velocity delta for a plain reinforcement-learning agent."""
    if not agent.is_active:
        return
    speed = intent_speed(agent, intent)

    if intent.action is ActionType.FORAGE:
        nearest = env.nearest_resource(agent.position.ground())
        if nearest is not None:
            target = nearest[0].position
            _push(agent, target.x - agent.position.x, target.z - agent.position.z, speed)
    elif intent.action is ActionType.FLEE:
        dx, dz = _flee_from_infected(agent, agents)
        if dx or dz:
            _push(agent, dx, dz, speed)
    else:
        _wander(agent, intent, speed, rng)


def steer_with_social(
    agent: Agent,
    intent: Intent,
    env: Environment,
    agents: Iterable[Agent],
    rng: random.Random,
) -> None:
    """Causal-agent steering: shared tips and danger zones bias the intent."""
    if not agent.is_active:
        return
    causal = agent.causal
    speed = intent_speed(agent, intent)

    if intent.action is ActionType.FORAGE:
        target: Location | None = None
        if agent.energy < HUNGRY_ENERGY:
            tip = best_resource_tip(agent)
            if tip is not None:
                target = tip.location
        if target is None:
            nearest = env.nearest_resource(agent.position.ground())
            if nearest is not None:
                target = nearest[0].position
        if target is not None:
            _push(agent, target.x - agent.position.x, target.z - agent.position.z, speed)
    elif intent.action is ActionType.FLEE:
        ax = az = 0.0
        zones = causal.danger_zones if causal is not None else []
        for zone in zones:
            dx = agent.position.x - zone.location.x
            dz = agent.position.z - zone.location.z
            dist = math.hypot(dx, dz) or 1.0
            if dist < zone.radius * 2:
                ax += dx / dist
                az += dz / dist
        if ax == 0 and az == 0:
            ax, az = _flee_from_infected(agent, agents)
        if ax or az:
            _push(agent, ax, az, speed)
    else:
        _wander(agent, intent, speed, rng)


def move_toward_target(agent: Agent) -> None:
    """Player steering: full speed at the click target, brake on arrival."""
    player = agent.player
    if player is None or player.target_position is None:
        return
    target = player.target_position
    dx = target.x - agent.position.x
    dz = target.z - agent.position.z
    distance = math.hypot(dx, dz)
    if distance > ARRIVAL_RADIUS:
        agent.velocity.x = (dx / distance) * player.move_speed
        agent.velocity.z = (dz / distance) * player.move_speed
    else:
        player.target_position = None
        agent.velocity.x *= 0.5
        agent.velocity.z *= 0.5


def integrate(agent: Agent, bound: float) -> None:
    """Move by velocity, damp it, and bounce off the square world edge."""
    if not agent.is_active and not agent.is_player:
        return
    agent.position.x += agent.velocity.x
    agent.position.z += agent.velocity.z
    agent.velocity.x *= DAMPING
    agent.velocity.z *= DAMPING
    if abs(agent.position.x) > bound:
        agent.position.x = math.copysign(bound, agent.position.x)
        agent.velocity.x *= RESTITUTION
    if abs(agent.position.z) > bound:
        agent.position.z = math.copysign(bound, agent.position.z)
        agent.velocity.z *= RESTITUTION
