"""Agent record and variant payloads.

Every agent shares one record; ``kind`` selects the variant and the optional
``causal`` / ``player`` payloads carry variant-specific state. Behavior per kind
lives in the dispatch table in ``alife_sim.agents.lifecycle``.
"""
from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from alife_sim.agents.genetics import Genotype, Phenotype
from alife_sim.agents.learning import QLearningPolicy
from alife_sim.memory.social_memory import DangerZone, HelpRequest, ResourceTip, SocialMemory
from alife_sim.utils.types import (
    AgentKind,
    HealthStatus,
    Intent,
    Location,
    Message,
    Personality,
    Vec3,
)

PERSONALITIES: tuple[Personality, ...] = tuple(Personality)


@dataclass(frozen=True)
class VariantProfile:
    """Metabolism, epidemic and mortality constants for one agent kind."""

    base_loss: float
    infection_penalty: float
    infection_probability: float
    recovery_bonus: float
    old_age_death: float
    starvation_weight: float
    exhaustion_weight: float
    reproduces: bool


PROFILES: dict[AgentKind, VariantProfile] = {
    AgentKind.BASIC: VariantProfile(
        base_loss=0.3,
        infection_penalty=0.4,
        infection_probability=0.03,
        recovery_bonus=10.0,
        old_age_death=0.1,
        starvation_weight=0.02,
        exhaustion_weight=0.05,
        reproduces=True,
    ),
    AgentKind.CAUSAL: VariantProfile(
        base_loss=0.3,
        infection_penalty=0.4,
        infection_probability=0.03,
        recovery_bonus=10.0,
        old_age_death=0.1,
        starvation_weight=0.02,
        exhaustion_weight=0.05,
        reproduces=True,
    ),
    AgentKind.PLAYER: VariantProfile(
        base_loss=0.25,
        infection_penalty=0.3,
        infection_probability=0.02,
        recovery_bonus=15.0,
        old_age_death=0.05,
        starvation_weight=0.015,
        exhaustion_weight=0.03,
        reproduces=False,
    ),
}


@dataclass
class CausalState:
    personality: Personality
    reasoning_frequency: float = 0.3
    information_decay: int = 300
    social_memory: SocialMemory = field(default_factory=SocialMemory)
    message_queue: list[Message] = field(default_factory=list)
    known_resource_locations: list[ResourceTip] = field(default_factory=list)
    danger_zones: list[DangerZone] = field(default_factory=list)
    help_requests: list[HelpRequest] = field(default_factory=list)
    communication_cooldown: int = 0
    last_communication: dict[str, Any] | None = None
    pending_threat_avoidance: Location | None = None
    consider_helping: str | None = None
    # Deferred reasoning slot
    pending_reasoning: bool = False
    queued_action: Intent | None = None
    last_reasoning: Any = None
    reasoning_history: deque = field(default_factory=lambda: deque(maxlen=20))
    decision_count: int = 0


@dataclass
class PlayerState:
    target_position: Location | None = None
    move_speed: float = 2.0


@dataclass
class Agent:
    id: str
    kind: AgentKind
    position: Vec3
    genotype: Genotype
    policy: QLearningPolicy
    velocity: Vec3 = field(default_factory=Vec3)
    age: int = 0
    energy: float = 100.0
    status: HealthStatus = HealthStatus.SUSCEPTIBLE
    infection_timer: int = 0
    reproduction_cooldown: int = 0
    is_active: bool = False
    causal: CausalState | None = None
    player: PlayerState | None = None
    phenotype: Phenotype = field(init=False)

    def __post_init__(self) -> None:
        self.phenotype = Phenotype.express(self.genotype)

    @property
    def profile(self) -> VariantProfile:
        return PROFILES[self.kind]

    @property
    def max_lifespan(self) -> int:
        return self.genotype.lifespan

    @property
    def is_player(self) -> bool:
        return self.kind is AgentKind.PLAYER

    @property
    def is_causal(self) -> bool:
        return self.kind is AgentKind.CAUSAL

    def distance_to(self, other: "Agent") -> float:
        return self.position.planar_distance(other.position)

    def color_class(self) -> str:
        if self.status is HealthStatus.INFECTED:
            return "infected"
        if self.status is HealthStatus.RECOVERED:
            return "recovered"
        return self.kind.value


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def pick_personality(rng: random.Random) -> Personality:
    return PERSONALITIES[int(rng.random() * len(PERSONALITIES)) % len(PERSONALITIES)]


def create_basic_agent(
    agent_id: str,
    position: Vec3,
    rng: random.Random,
    genotype: Genotype | None = None,
) -> Agent:
    return Agent(
        id=agent_id,
        kind=AgentKind.BASIC,
        position=position,
        genotype=genotype or Genotype.random(rng),
        policy=QLearningPolicy(rng),
    )


def create_causal_agent(
    agent_id: str,
    position: Vec3,
    rng: random.Random,
    genotype: Genotype | None = None,
    reasoning_frequency: float = 0.3,
    history_limit: int = 20,
) -> Agent:
    genotype = genotype or Genotype.random(rng)
    causal = CausalState(
        personality=pick_personality(rng),
        reasoning_frequency=reasoning_frequency,
        reasoning_history=deque(maxlen=history_limit),
    )
    return Agent(
        id=agent_id,
        kind=AgentKind.CAUSAL,
        position=position,
        genotype=genotype,
        policy=QLearningPolicy(rng),
        causal=causal,
    )


def create_player_agent(
    agent_id: str,
    position: Vec3,
    rng: random.Random,
    genotype: Genotype | None = None,
) -> Agent:
    return Agent(
        id=agent_id,
        kind=AgentKind.PLAYER,
        position=position,
        genotype=genotype or Genotype.random(rng),
        policy=QLearningPolicy(rng),
        player=PlayerState(),
    )
