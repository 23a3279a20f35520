"""Per-tick agent state machine.

``update_agent`` runs the shared lifecycle steps in a fixed order and hands
the variant-specific decision step to the ``BEHAVIORS`` table keyed by
``Agent.kind``. All stochastic branches draw from ``ctx.rng`` so a seeded run
replays exactly.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable

from alife_sim.agents import steering
from alife_sim.agents.cognition import ReasoningRequest
from alife_sim.agents.core import Agent, create_basic_agent, create_causal_agent
from alife_sim.agents.messaging import (
    broadcast,
    decide_to_communicate,
    process_message_queue,
    verify_information,
)
from alife_sim.config.settings import AppSettings
from alife_sim.engine.dispatcher import ReasoningDispatcher
from alife_sim.utils.ids import IdGenerator
from alife_sim.utils.types import AgentKind, HealthStatus, Observation, StepOutcome, Vec3
from alife_sim.world.environment import Environment

logger = logging.getLogger("alife_sim.world")

OBSERVATION_RADIUS = 8.0
NO_RESOURCE_DISTANCE = 100.0
FORAGE_RADIUS = 3.0
THREAT_RADIUS = 5.0
RECOVERY_TICKS = 40
AGE_PENALTY = 0.2
REPRODUCTION_COOLDOWN = 60
REPRODUCTION_COST = 15.0
MIN_REPRODUCTION_AGE = 20
OFFSPRING_JITTER = 3.0


@dataclass
class TickContext:
    """Shared state one agent update may read or mutate."""

    tick: int
    environment: Environment
    agents: list[Agent]
    rng: random.Random
    ids: IdGenerator
    settings: AppSettings
    dispatcher: ReasoningDispatcher | None = None
    mode_set: frozenset[str] = frozenset({"full_system"})
    events: Counter = field(default_factory=Counter)

    @property
    def population(self) -> int:
        return len(self.agents)

    @property
    def messaging_enabled(self) -> bool:
        return "no_messaging" not in self.mode_set


# ---------------------------------------------------------------------------
# Sensing
# ---------------------------------------------------------------------------

def observe(agent: Agent, ctx: TickContext) -> Observation:
    nearby = [
        a for a in ctx.agents
        if a.id != agent.id and agent.distance_to(a) < OBSERVATION_RADIUS
    ]
    here = agent.position.ground()
    nearest = ctx.environment.nearest_resource(here)
    return Observation(
        position=here,
        energy=agent.energy,
        nearby_count=len(nearby),
        nearby_infected=sum(1 for a in nearby if a.status is HealthStatus.INFECTED),
        age=agent.age,
        nearest_resource_distance=nearest[1] if nearest is not None else NO_RESOURCE_DISTANCE,
        status=agent.status,
    )


# ---------------------------------------------------------------------------
# Shared lifecycle steps
# ---------------------------------------------------------------------------

def apply_metabolism(agent: Agent, pressure: float) -> float:
    """Subtract this tick's upkeep; returns the amount lost."""
    profile = agent.profile
    loss = profile.base_loss * (1 + pressure * 0.5)
    if agent.status is HealthStatus.INFECTED:
        loss += profile.infection_penalty
    if agent.age > agent.max_lifespan * 0.8:
        loss += AGE_PENALTY
    agent.energy = max(0.0, agent.energy - loss)
    return loss


def death_probability(agent: Agent, threshold: float) -> float:
    profile = agent.profile
    chance = 0.0
    if agent.age >= agent.max_lifespan:
        chance += profile.old_age_death
    if agent.energy < threshold:
        chance += ((threshold - agent.energy) / max(1.0, threshold)) * profile.starvation_weight
    if agent.energy <= 5:
        chance += (5 - agent.energy) * profile.exhaustion_weight
    return chance


def roll_mortality(agent: Agent, threshold: float, rng: random.Random) -> bool:
    """One Bernoulli draw against ``death_probability``."""
    return rng.random() < death_probability(agent, threshold)


def progress_infection(agent: Agent) -> bool:
    """Advance the infection clock; returns True when the agent recovers."""
    if agent.status is not HealthStatus.INFECTED:
        return False
    agent.infection_timer += 1
    if agent.infection_timer <= RECOVERY_TICKS:
        return False
    agent.status = HealthStatus.RECOVERED
    agent.energy = min(100.0, agent.energy + agent.profile.recovery_bonus)
    return True


def expose_to_infection(agent: Agent, agents: list[Agent], rng: random.Random) -> bool:
    """Single infection trial when any infected agent is within contact range."""
    if agent.status is not HealthStatus.SUSCEPTIBLE:
        return False
    contact = agent.phenotype.social_distance
    exposed = any(
        a.status is HealthStatus.INFECTED and a.id != agent.id and agent.distance_to(a) < contact
        for a in agents
    )
    if not exposed:
        return False
    probability = agent.profile.infection_probability * (1 - agent.phenotype.resistance)
    if rng.random() < probability:
        agent.status = HealthStatus.INFECTED
        agent.infection_timer = 0
        return True
    return False


def forage(agent: Agent, env: Environment) -> float:
    """Eat every resource within reach; returns the energy gained."""
    here = agent.position.ground()
    bonus = 1.2 if agent.status is HealthStatus.RECOVERED else 1.0
    gained = 0.0
    for resource in env.resources_within(here, FORAGE_RADIUS):
        before = agent.energy
        agent.energy = min(100.0, agent.energy + resource.value * agent.phenotype.efficiency * bonus)
        gained += agent.energy - before
        env.consume_resource(resource.id)
    return gained


def check_reproduction(agent: Agent, ctx: TickContext, threshold: float) -> bool:
    if not agent.profile.reproduces:
        return False
    if ctx.population >= ctx.settings.simulation.hard_max_population:
        return False
    if agent.energy <= max(30.0, threshold + 10):
        return False
    if agent.reproduction_cooldown != 0 or agent.age <= MIN_REPRODUCTION_AGE:
        return False
    pressure = ctx.environment.pressure(ctx.population)
    return ctx.rng.random() < 0.01 / (1 + pressure)


def reproduce(parent: Agent, ctx: TickContext) -> Agent:
    """Spawn a mutated offspring of the parent's kind and pay the cost."""
    rng = ctx.rng
    genotype = parent.genotype.mutated(rng)
    position = Vec3(
        x=parent.position.x + (rng.random() - 0.5) * OFFSPRING_JITTER,
        y=1.0,
        z=parent.position.z + (rng.random() - 0.5) * OFFSPRING_JITTER,
    )
    child_id = ctx.ids.next("agent")
    if parent.kind is AgentKind.CAUSAL:
        reasoning = ctx.settings.reasoning
        child = create_causal_agent(
            child_id, position, rng,
            genotype=genotype,
            reasoning_frequency=reasoning.reasoning_frequency,
            history_limit=reasoning.history_limit,
        )
    else:
        child = create_basic_agent(child_id, position, rng, genotype=genotype)
    child.is_active = parent.is_active
    parent.reproduction_cooldown = REPRODUCTION_COOLDOWN
    parent.energy = max(0.0, parent.energy - REPRODUCTION_COST)
    logger.debug("BIRTH child=%s parent=%s tick=%d", child_id, parent.id, ctx.tick)
    return child


# ---------------------------------------------------------------------------
# Variant behavior
# ---------------------------------------------------------------------------

def _act_basic(agent: Agent, ctx: TickContext) -> None:
    obs = observe(agent, ctx)
    intent = agent.policy.select(obs)
    steering.steer(agent, intent, ctx.environment, ctx.agents, ctx.rng)
    steering.integrate(agent, ctx.settings.simulation.world_bound)


def _act_causal(agent: Agent, ctx: TickContext) -> None:
    causal = agent.causal
    rng = ctx.rng
    process_message_queue(agent, ctx.tick)
    obs = observe(agent, ctx)
    verify_information(agent, obs, ctx.tick)

    if ctx.messaging_enabled:
        attempt = rng.random() < ctx.settings.simulation.communication_probability
        if attempt and causal.communication_cooldown == 0:
            message = decide_to_communicate(agent, obs, ctx.agents, rng, ctx.ids, ctx.tick)
            if message is not None:
                broadcast(agent, message, ctx.agents, ctx.tick)
                ctx.events["messages"] += 1

    if ctx.dispatcher is not None:
        wants_reasoning = rng.random() < causal.reasoning_frequency
        if wants_reasoning and not causal.pending_reasoning:
            here = agent.position
            threats = sum(
                1 for a in ctx.agents
                if a.id != agent.id
                and a.status is HealthStatus.INFECTED
                and here.planar_distance(a.position) < THREAT_RADIUS
            )
            request = ReasoningRequest(
                agent_id=agent.id,
                tick=ctx.tick,
                observation=obs,
                personality=causal.personality,
                max_lifespan=agent.max_lifespan,
                reproduction_cooldown=agent.reproduction_cooldown,
                nearby_threats=threats,
                confidence=rng.random() * 0.4 + 0.6,
            )
            if ctx.dispatcher.schedule(causal, request):
                ctx.events["reasoning_scheduled"] += 1

    if causal.queued_action is not None:
        intent = causal.queued_action
        causal.queued_action = None
    else:
        intent = agent.policy.select(obs)
    steering.steer_with_social(agent, intent, ctx.environment, ctx.agents, rng)
    steering.integrate(agent, ctx.settings.simulation.world_bound)


def _act_player(agent: Agent, ctx: TickContext) -> None:
    steering.move_toward_target(agent)
    steering.integrate(agent, ctx.settings.simulation.world_bound)


BEHAVIORS: dict[AgentKind, Callable[[Agent, TickContext], None]] = {
    AgentKind.BASIC: _act_basic,
    AgentKind.CAUSAL: _act_causal,
    AgentKind.PLAYER: _act_player,
}


def update_agent(agent: Agent, ctx: TickContext) -> StepOutcome:
    """Advance one agent by one tick and report what the loop should do with it."""
    env = ctx.environment
    population = ctx.population

    agent.age += 1
    apply_metabolism(agent, env.pressure(population))
    agent.reproduction_cooldown = max(0, agent.reproduction_cooldown - 1)
    if agent.causal is not None:
        agent.causal.communication_cooldown = max(0, agent.causal.communication_cooldown - 1)

    threshold = env.survival_threshold(population)
    if roll_mortality(agent, threshold, ctx.rng):
        return StepOutcome.DIE

    if progress_infection(agent):
        ctx.events["recoveries"] += 1
    if expose_to_infection(agent, ctx.agents, ctx.rng):
        ctx.events["infections"] += 1

    forage(agent, env)
    BEHAVIORS[agent.kind](agent, ctx)

    if check_reproduction(agent, ctx, threshold):
        return StepOutcome.REPRODUCE
    return StepOutcome.CONTINUE
