from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class SimulationSettings:
    seed: int = 42
    ticks: int = 1000
    causal_agents: int = 9
    rl_agents: int = 15
    initial_infected: int = 1
    hard_max_population: int = 200
    spawn_extent: float = 30.0
    world_bound: float = 20.0
    communication_probability: float = 0.4
    log_tick_interval: int = 50
    history_interval: int = 10
    history_window: int = 50


@dataclass(frozen=True)
class EnvironmentSettings:
    """Resource field, season cycle and density constants."""

    carrying_capacity: int = 100
    """Population that maps to pressure 1.0 in survival/upkeep formulas."""
    season_length: int = 150
    """Ticks per season; a full year is four seasons."""
    regeneration_probability: float = 0.6
    """Chance per tick that new resources sprout while below the seasonal max."""
    max_new_per_tick: int = 3
    emergency_floor: int = 10
    """Below this many resources an emergency batch is injected."""
    emergency_batch: int = 5
    emergency_value: float = 25.0
    emergency_quality: float = 0.8
    weather_change_probability: float = 0.02


@dataclass(frozen=True)
class ReasoningSettings:
    """Controls the deferred chain-of-thought pipeline for causal agents."""

    reasoning_frequency: float = 0.3
    """Per-tick probability that a causal agent schedules a reasoning job."""
    resolve_deadline_s: float = 0.5
    """Max wall-clock time the dispatcher drives its loop per tick."""
    history_limit: int = 20
    """Reasoning traces retained per agent for inspection."""


@dataclass(frozen=True)
class AppSettings:
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    environment: EnvironmentSettings = field(default_factory=EnvironmentSettings)
    reasoning: ReasoningSettings = field(default_factory=ReasoningSettings)
    output_dir: Path = Path("outputs")

    @staticmethod
    def from_env() -> "AppSettings":
        return AppSettings(
            simulation=SimulationSettings(
                seed=int(os.getenv("SEED", "42")),
                ticks=int(os.getenv("TICKS", "1000")),
                causal_agents=int(os.getenv("CAUSAL_AGENTS", "9")),
                rl_agents=int(os.getenv("RL_AGENTS", "15")),
                initial_infected=int(os.getenv("INITIAL_INFECTED", "1")),
                hard_max_population=int(os.getenv("HARD_MAX_POPULATION", "200")),
                spawn_extent=float(os.getenv("SPAWN_EXTENT", "30.0")),
                world_bound=float(os.getenv("WORLD_BOUND", "20.0")),
                communication_probability=float(
                    os.getenv("COMMUNICATION_PROBABILITY", "0.4")
                ),
                log_tick_interval=int(os.getenv("LOG_TICK_INTERVAL", "50")),
                history_interval=int(os.getenv("HISTORY_INTERVAL", "10")),
                history_window=int(os.getenv("HISTORY_WINDOW", "50")),
            ),
            environment=EnvironmentSettings(
                carrying_capacity=int(os.getenv("CARRYING_CAPACITY", "100")),
                season_length=int(os.getenv("SEASON_LENGTH", "150")),
                regeneration_probability=float(
                    os.getenv("REGENERATION_PROBABILITY", "0.6")
                ),
                max_new_per_tick=int(os.getenv("MAX_NEW_RESOURCES_PER_TICK", "3")),
                emergency_floor=int(os.getenv("EMERGENCY_FLOOR", "10")),
                emergency_batch=int(os.getenv("EMERGENCY_BATCH", "5")),
                emergency_value=float(os.getenv("EMERGENCY_VALUE", "25.0")),
                emergency_quality=float(os.getenv("EMERGENCY_QUALITY", "0.8")),
                weather_change_probability=float(
                    os.getenv("WEATHER_CHANGE_PROBABILITY", "0.02")
                ),
            ),
            reasoning=ReasoningSettings(
                reasoning_frequency=float(os.getenv("REASONING_FREQUENCY", "0.3")),
                resolve_deadline_s=float(
                    os.getenv("REASONING_RESOLVE_DEADLINE_S", "0.5")
                ),
                history_limit=int(os.getenv("REASONING_HISTORY_LIMIT", "20")),
            ),
            output_dir=Path(os.getenv("OUTPUT_DIR", "outputs")),
        )
