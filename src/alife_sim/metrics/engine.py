from __future__ import annotations

import csv
from dataclasses import asdict, dataclass
from pathlib import Path
from statistics import mean
from typing import TYPE_CHECKING, Any, Iterable

from alife_sim.agents.core import Agent
from alife_sim.trust.system import TrustSystem
from alife_sim.utils.types import HealthStatus

if TYPE_CHECKING:
    from alife_sim.world.simulator import EcosystemSimulator

ACTIVE_MESSAGE_WINDOW = 10


@dataclass(frozen=True)
class PopulationStats:
    susceptible: int = 0
    infected: int = 0
    recovered: int = 0
    total: int = 0
    avg_age: int = 0
    avg_energy: int = 0
    causal_agents: int = 0
    rl_agents: int = 0
    reasoning_events: int = 0
    communication_events: int = 0
    active_messages: int = 0

    @staticmethod
    def from_agents(agents: Iterable[Agent]) -> "PopulationStats":
        agents = list(agents)
        if not agents:
            return PopulationStats()
        causal = [a for a in agents if a.causal is not None]
        active = 0
        for a in causal:
            last = a.causal.last_communication
            if last and a.age - last.get("timestamp", 0) < ACTIVE_MESSAGE_WINDOW:
                active += 1
        return PopulationStats(
            susceptible=sum(1 for a in agents if a.status is HealthStatus.SUSCEPTIBLE),
            infected=sum(1 for a in agents if a.status is HealthStatus.INFECTED),
            recovered=sum(1 for a in agents if a.status is HealthStatus.RECOVERED),
            total=len(agents),
            avg_age=round(sum(a.age for a in agents) / len(agents)),
            avg_energy=round(sum(a.energy for a in agents) / len(agents)),
            causal_agents=len(causal),
            rl_agents=sum(1 for a in agents if not a.is_player and a.causal is None),
            reasoning_events=sum(a.causal.decision_count for a in causal),
            communication_events=sum(
                len(a.causal.social_memory.received_messages) for a in causal
            ),
            active_messages=active,
        )

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class MetricsEngine:
    """Run-level summary numbers for headless experiments."""

    def __init__(self, trust_system: TrustSystem | None = None) -> None:
        self.trust_system = trust_system or TrustSystem()

    def compute(self, sim: "EcosystemSimulator") -> dict[str, float]:
        stats = sim.stats
        counters = sim.counters
        ticks = max(1, sim.tick)
        causal = [a for a in sim.agents if a.causal is not None]
        trust_values = [self.trust_system.average(a.causal.social_memory) for a in causal]

        return {
            "ticks_survived": sim.tick,
            "final_population": stats.total,
            "peak_population": sim.peak_population,
            "mean_population": round(sim.population_sum / ticks, 4),
            "final_susceptible": stats.susceptible,
            "final_infected": stats.infected,
            "final_recovered": stats.recovered,
            "births": counters["births"],
            "deaths": counters["deaths"],
            "infections": counters["infections"],
            "recoveries": counters["recoveries"],
            "messages_sent": counters["messages"],
            "reasoning_scheduled": counters["reasoning_scheduled"],
            "reasoning_events": stats.reasoning_events,
            "mean_trust": round(mean(trust_values), 4) if trust_values else 0.5,
            "extinct": int(sim.extinct),
            "player_alive": int(sim.player is not None),
        }

    def write_metrics_csv(
        self,
        output_dir: Path,
        rows: list[dict[str, Any]],
        filename: str = "metrics.csv",
    ) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / filename
        if not rows:
            return path
        keys = list(rows[0].keys())
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=keys)
            writer.writeheader()
            writer.writerows(rows)
        return path
