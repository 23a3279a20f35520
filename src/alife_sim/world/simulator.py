from __future__ import annotations

import logging
import random
import time
from collections import Counter, deque
from dataclasses import dataclass
from typing import Any

from alife_sim.agents.core import (
    Agent,
    create_basic_agent,
    create_causal_agent,
    create_player_agent,
)
from alife_sim.agents.lifecycle import TickContext, reproduce, update_agent
from alife_sim.agents.steering import integrate, move_toward_target
from alife_sim.config.settings import AppSettings
from alife_sim.engine import ReasoningDispatcher
from alife_sim.metrics.engine import PopulationStats
from alife_sim.trust.system import TrustSystem
from alife_sim.utils.ids import IdGenerator
from alife_sim.utils.types import (
    AgentInspection,
    AgentSnapshot,
    HealthStatus,
    Location,
    StepOutcome,
    Vec3,
)
from alife_sim.world.environment import Environment, EnvironmentSnapshot

PLAYER_ID = "player"


@dataclass(frozen=True)
class SimulationSnapshot:
    tick: int
    running: bool
    game_over: bool
    extinct: bool
    agents: tuple[AgentSnapshot, ...]
    environment: EnvironmentSnapshot
    stats: PopulationStats


class EcosystemSimulator:
    """Owns the population and the environment and advances them tick by tick."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        seed: int | None = None,
        mode: str = "full_system",
        run_id: str | None = None,
    ) -> None:
        self.logger = logging.getLogger("alife_sim.world")
        self.settings = settings or AppSettings()
        self.seed = self.settings.simulation.seed if seed is None else seed
        self.mode = mode
        self._mode_set = frozenset(p.strip() for p in mode.split("+") if p.strip())
        self.run_id = run_id or f"{mode}_seed{self.seed}"
        self.trust_system = TrustSystem()
        self.dispatcher: ReasoningDispatcher | None = None
        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard the current world and rebuild the seeded starting population."""
        if self.dispatcher is not None:
            self.dispatcher.close()
        sim_cfg = self.settings.simulation
        self.rng = random.Random(self.seed)
        self.ids = IdGenerator()
        self.environment = Environment(self.settings.environment, self.rng, self.ids)
        self.dispatcher = (
            None if "no_reasoning" in self._mode_set
            else ReasoningDispatcher(self.settings.reasoning)
        )
        self.tick = 0
        self.running = False
        self.game_over = False
        self.extinct = False
        self.counters: Counter = Counter()
        self.peak_population = 0
        self.population_sum = 0
        self._history: deque[dict[str, Any]] = deque(maxlen=sim_cfg.history_window)
        self.agents: list[Agent] = self._init_agents()
        self.stats = PopulationStats.from_agents(self.agents)
        self.peak_population = len(self.agents)
        self.logger.info(
            "World initialized: run_id=%s mode=%s seed=%d agents=%d",
            self.run_id, self.mode, self.seed, len(self.agents),
        )

    def _init_agents(self) -> list[Agent]:
        sim_cfg = self.settings.simulation
        reasoning = self.settings.reasoning
        out = [create_player_agent(PLAYER_ID, Vec3(0.0, 1.0, 0.0), self.rng)]
        extent = sim_cfg.spawn_extent
        for i in range(sim_cfg.causal_agents + sim_cfg.rl_agents):
            position = Vec3(
                x=(self.rng.random() - 0.5) * extent,
                y=1.0,
                z=(self.rng.random() - 0.5) * extent,
            )
            if i < sim_cfg.causal_agents:
                agent = create_causal_agent(
                    self.ids.next("causal"), position, self.rng,
                    reasoning_frequency=reasoning.reasoning_frequency,
                    history_limit=reasoning.history_limit,
                )
            else:
                agent = create_basic_agent(self.ids.next("rl"), position, self.rng)
            if i < sim_cfg.initial_infected:
                agent.status = HealthStatus.INFECTED
            out.append(agent)
        return out

    def close(self) -> None:
        if self.dispatcher is not None:
            self.dispatcher.close()

    # ------------------------------------------------------------------
    # Input collaborator
    # ------------------------------------------------------------------

    def set_running(self, running: bool) -> None:
        self.running = bool(running) and not self.game_over
        for agent in self.agents:
            agent.is_active = self.running

    def set_player_target(self, x: float, z: float) -> bool:
        player = self.player
        bound = self.settings.simulation.world_bound
        if player is None or self.game_over:
            return False
        if abs(x) > bound or abs(z) > bound:
            return False
        player.player.target_position = Location(x, z)
        return True

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(self) -> SimulationSnapshot:
        if not self.running:
            self._advance_paused_player()
            return self.snapshot()

        self.tick += 1
        tick = self.tick
        sim_cfg = self.settings.simulation
        agents = self.agents
        for agent in agents:
            agent.is_active = True

        ctx = TickContext(
            tick=tick,
            environment=self.environment,
            agents=agents,
            rng=self.rng,
            ids=self.ids,
            settings=self.settings,
            dispatcher=self.dispatcher,
            mode_set=self._mode_set,
        )
        to_remove: list[int] = []
        to_add: list[Agent] = []
        for idx, agent in enumerate(agents):
            outcome = update_agent(agent, ctx)
            if outcome is StepOutcome.DIE:
                to_remove.append(idx)
                if agent.is_player:
                    self._end_game(agent)
            elif outcome is StepOutcome.REPRODUCE:
                threshold = self.environment.survival_threshold(len(agents))
                if (
                    len(agents) + len(to_add) < sim_cfg.hard_max_population
                    and agent.energy > max(15.0, threshold * 0.5)
                ):
                    to_add.append(reproduce(agent, ctx))

        for idx in sorted(to_remove, reverse=True):
            del agents[idx]
        agents.extend(to_add)

        self.counters.update(ctx.events)
        self.counters["births"] += len(to_add)
        self.counters["deaths"] += len(to_remove)
        self._check_invariants()

        self.environment.update()
        if self.dispatcher is not None:
            self.dispatcher.resolve(tick)

        self.stats = PopulationStats.from_agents(agents)
        self.peak_population = max(self.peak_population, len(agents))
        self.population_sum += len(agents)
        if tick % max(1, sim_cfg.history_interval) == 0:
            self._history.append({"tick": tick, **self.stats.as_dict()})
        if not agents and not self.extinct:
            self.extinct = True
            self.logger.warning("Tick %d: population extinct", tick)
        self._maybe_log_tick_progress(tick)
        return self.snapshot()

    def run(self, ticks: int | None = None) -> int:
        """Headless loop; returns the number of ticks actually stepped."""
        total = self.settings.simulation.ticks if ticks is None else ticks
        self.set_running(True)
        t0 = time.perf_counter()
        done = 0
        for _ in range(total):
            if self.extinct:
                break
            if not self.running:
                # Player death pauses the world; headless runs carry on without it
                self.running = True
            self.step()
            done += 1
        self.logger.info(
            "Run finished: run_id=%s ticks=%d population=%d elapsed=%.2fs",
            self.run_id, done, len(self.agents), time.perf_counter() - t0,
        )
        return done

    def _advance_paused_player(self) -> None:
        player = self.player
        if player is None or player.player.target_position is None:
            return
        move_toward_target(player)
        integrate(player, self.settings.simulation.world_bound)

    def _end_game(self, player: Agent) -> None:
        self.game_over = True
        self.running = False
        self.logger.warning(
            "PLAYER-DEATH tick=%d age=%d energy=%.1f status=%s",
            self.tick, player.age, player.energy, player.status.value,
        )

    def _check_invariants(self) -> None:
        cap = self.settings.simulation.hard_max_population
        assert len(self.agents) <= cap, f"population {len(self.agents)} exceeds cap {cap}"
        for agent in self.agents:
            assert 0.0 <= agent.energy <= 100.0, f"{agent.id} energy out of range: {agent.energy}"

    def _maybe_log_tick_progress(self, tick: int) -> None:
        interval = max(1, self.settings.simulation.log_tick_interval)
        if tick % interval != 0:
            return
        stats = self.stats
        self.logger.info(
            "TICK %d: population=%d S=%d I=%d R=%d causal=%d rl=%d resources=%d season=%s",
            tick, stats.total, stats.susceptible, stats.infected, stats.recovered,
            stats.causal_agents, stats.rl_agents,
            len(self.environment.resources), self.environment.season,
        )

    # ------------------------------------------------------------------
    # Renderer-facing views
    # ------------------------------------------------------------------

    @property
    def player(self) -> Agent | None:
        for agent in self.agents:
            if agent.is_player:
                return agent
        return None

    @property
    def population_history(self) -> list[dict[str, Any]]:
        return list(self._history)

    def find_agent(self, agent_id: str) -> Agent | None:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            tick=self.tick,
            running=self.running,
            game_over=self.game_over,
            extinct=self.extinct,
            agents=tuple(self._agent_snapshot(a) for a in self.agents),
            environment=self.environment.snapshot(),
            stats=self.stats,
        )

    def _agent_snapshot(self, agent: Agent) -> AgentSnapshot:
        personality = reasoning = indicator = None
        if agent.causal is not None:
            causal = agent.causal
            personality = causal.personality.value
            if causal.last_reasoning is not None:
                reasoning = causal.last_reasoning.conclusion
            indicator = self.trust_system.indicator(
                self.trust_system.average(causal.social_memory)
            )
        return AgentSnapshot(
            id=agent.id,
            kind=agent.kind,
            position=(agent.position.x, agent.position.y, agent.position.z),
            status=agent.status,
            color_class=agent.color_class(),
            energy=agent.energy,
            age=agent.age,
            personality=personality,
            last_reasoning=reasoning,
            trust_indicator=indicator,
        )

    def player_stats(self) -> dict[str, Any] | None:
        player = self.player
        if player is None:
            return None
        return {
            "energy": round(player.energy),
            "age": player.age,
            "status": player.status.value,
            "position": {"x": round(player.position.x), "z": round(player.position.z)},
        }

    def inspect_agent(self, agent_id: str) -> AgentInspection | None:
        agent = self.find_agent(agent_id)
        if agent is None or agent.causal is None:
            return None
        causal = agent.causal
        last = causal.last_reasoning
        communications = [
            {
                "sender": m.sender,
                "type": m.type.value,
                "message": m.text,
                "timestamp": m.timestamp,
            }
            for m in causal.social_memory.recent_messages(3)
        ]
        return AgentInspection(
            id=agent.id,
            personality=causal.personality.value,
            reasoning=last.conclusion if last is not None else None,
            confidence=last.confidence if last is not None else None,
            age=agent.age,
            energy=agent.energy,
            status=agent.status,
            history=list(causal.reasoning_history)[-5:],
            communications=communications,
            known_agents=len(causal.social_memory.known_agents),
            known_resources=len(causal.known_resource_locations),
            danger_zones=len(causal.danger_zones),
            help_requests=len(causal.help_requests),
            avg_trust=self.trust_system.average(causal.social_memory),
        )
