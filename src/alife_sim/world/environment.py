from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass

from alife_sim.config.settings import EnvironmentSettings
from alife_sim.utils.ids import IdGenerator
from alife_sim.utils.types import Location, Resource

SEASONS = ("spring", "summer", "autumn", "winter")
SEASON_MULTIPLIERS = {"winter": 0.6, "spring": 1.4, "summer": 1.2, "autumn": 1.0}


@dataclass(frozen=True)
class EnvironmentSnapshot:
    cycle_step: int
    season: str
    temperature: float
    weather: str
    carrying_capacity: int
    resources: tuple[Resource, ...]


class Environment:
    def __init__(
        self,
        cfg: EnvironmentSettings,
        rng: random.Random,
        ids: IdGenerator,
    ) -> None:
        self.logger = logging.getLogger("alife_sim.world")
        self.cfg = cfg
        self.rng = rng
        self.ids = ids
        self.resources: dict[str, Resource] = {}
        self.weather = "clear"
        self.temperature = 20.0
        self.season = "spring"
        self.cycle_step = 0
        self.carrying_capacity = cfg.carrying_capacity

    # ------------------------------------------------------------------
    # Density formulas
    # ------------------------------------------------------------------

    def pressure(self, population: int) -> float:
        return min(2.0, population / self.carrying_capacity)

    def survival_threshold(self, population: int) -> float:
        return max(10.0, 30.0 * population / self.carrying_capacity)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self) -> EnvironmentSnapshot:
        self.cycle_step += 1
        season_length = self.cfg.season_length
        phase = (self.cycle_step % (season_length * len(SEASONS))) / season_length
        self.season = SEASONS[min(len(SEASONS) - 1, int(phase))]
        self.temperature = 20 + math.sin((phase - 1) * math.pi) * 15

        self.regenerate_resources()

        if self.rng.random() < self.cfg.weather_change_probability:
            if self.rng.random() < 0.7:
                self.weather = "clear"
            elif self.rng.random() < 0.5:
                self.weather = "rain"
            else:
                self.weather = "storm"
        return self.snapshot()

    def max_resources(self) -> int:
        base = 40 if self.season == "winter" else 60
        return math.floor(base * SEASON_MULTIPLIERS[self.season])

    def regenerate_resources(self) -> int:
        """Grow new resources for this tick; returns how many were added."""
        count = len(self.resources)
        max_resources = self.max_resources()
        added = 0

        if count < max_resources and self.rng.random() < self.cfg.regeneration_probability:
            for _ in range(min(self.cfg.max_new_per_tick, max_resources - count)):
                quality = self.rng.random()
                distance = self.rng.random() * 15 + 3
                angle = self.rng.random() * math.pi * 2
                rid = self.ids.next("resource")
                self.resources[rid] = Resource(
                    id=rid,
                    position=Location(math.cos(angle) * distance, math.sin(angle) * distance),
                    value=quality * 20 + 10,
                    quality=quality,
                )
                added += 1

        # Floor is judged on the count before this tick's growth
        if count < self.cfg.emergency_floor:
            for _ in range(self.cfg.emergency_batch):
                rid = self.ids.next("emergency")
                self.resources[rid] = Resource(
                    id=rid,
                    position=Location(
                        (self.rng.random() - 0.5) * 20, (self.rng.random() - 0.5) * 20
                    ),
                    value=self.cfg.emergency_value,
                    quality=self.cfg.emergency_quality,
                )
                added += 1
            self.logger.debug(
                "Emergency resources injected step=%d count_before=%d",
                self.cycle_step, count,
            )
        return added

    # ------------------------------------------------------------------
    # Queries used by agents during a tick
    # ------------------------------------------------------------------

    def consume_resource(self, resource_id: str) -> Resource | None:
        return self.resources.pop(resource_id, None)

    def nearest_resource(self, location: Location) -> tuple[Resource, float] | None:
        nearest: tuple[Resource, float] | None = None
        for resource in self.resources.values():
            distance = location.distance_to(resource.position)
            if nearest is None or distance < nearest[1]:
                nearest = (resource, distance)
        return nearest

    def resources_within(self, location: Location, radius: float) -> list[Resource]:
        return [
            r for r in self.resources.values()
            if location.distance_to(r.position) < radius
        ]

    def snapshot(self) -> EnvironmentSnapshot:
        return EnvironmentSnapshot(
            cycle_step=self.cycle_step,
            season=self.season,
            temperature=self.temperature,
            weather=self.weather,
            carrying_capacity=self.carrying_capacity,
            resources=tuple(
                Resource(r.id, r.position, r.value, r.quality)
                for r in self.resources.values()
            ),
        )
