from __future__ import annotations

import random
from dataclasses import replace
from pathlib import Path

import pytest

from alife_sim.agents.core import Agent, CausalState, PlayerState
from alife_sim.agents.genetics import Genotype
from alife_sim.agents.learning import QLearningPolicy
from alife_sim.config.settings import AppSettings, SimulationSettings
from alife_sim.utils.ids import IdGenerator
from alife_sim.utils.types import AgentKind, HealthStatus, Location, Observation, Personality, Vec3
from alife_sim.world.environment import Environment


class ScriptedRandom(random.Random):
    """``random()`` pops scripted values, then returns ``default`` forever."""

    def __init__(self, values=(), default: float = 0.99) -> None:
        super().__init__(0)
        self.values = list(values)
        self.default = default

    def random(self) -> float:
        if self.values:
            return self.values.pop(0)
        return self.default


DEFAULT_TRAITS = dict(
    speed=1.0,
    size=0.3,
    social_radius=4.0,
    infection_resistance=0.0,
    lifespan=200,
    reproduction_threshold=60.0,
    aggressiveness=0.5,
    forage_efficiency=0.5,
)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def small_settings(tmp_path: Path) -> AppSettings:
    return replace(
        AppSettings(),
        simulation=SimulationSettings(ticks=5, log_tick_interval=1000),
        output_dir=tmp_path / "outputs",
    )


@pytest.fixture
def ids() -> IdGenerator:
    return IdGenerator()


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def environment(settings: AppSettings, ids: IdGenerator) -> Environment:
    return Environment(settings.environment, ScriptedRandom(), ids)


@pytest.fixture
def make_genotype():
    def _make(**overrides) -> Genotype:
        return Genotype(**{**DEFAULT_TRAITS, **overrides})

    return _make


@pytest.fixture
def make_agent(make_genotype):
    def _make(
        agent_id: str = "a",
        kind: AgentKind = AgentKind.BASIC,
        x: float = 0.0,
        z: float = 0.0,
        rng: random.Random | None = None,
        personality: Personality = Personality.SOCIAL,
        status: HealthStatus = HealthStatus.SUSCEPTIBLE,
        energy: float = 100.0,
        age: int = 0,
        **traits,
    ) -> Agent:
        agent = Agent(
            id=agent_id,
            kind=kind,
            position=Vec3(x, 1.0, z),
            genotype=make_genotype(**traits),
            policy=QLearningPolicy(rng or ScriptedRandom()),
            causal=CausalState(personality=personality) if kind is AgentKind.CAUSAL else None,
            player=PlayerState() if kind is AgentKind.PLAYER else None,
        )
        agent.status = status
        agent.energy = energy
        agent.age = age
        return agent

    return _make


@pytest.fixture
def make_obs():
    def _make(**overrides) -> Observation:
        values = dict(
            position=Location(0.0, 0.0),
            energy=100.0,
            nearby_count=0,
            nearby_infected=0,
            age=0,
            nearest_resource_distance=100.0,
            status=HealthStatus.SUSCEPTIBLE,
        )
        values.update(overrides)
        return Observation(**values)

    return _make
