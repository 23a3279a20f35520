from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable

from alife_sim.config.settings import AppSettings
from alife_sim.metrics.engine import MetricsEngine
from alife_sim.world.simulator import EcosystemSimulator


@dataclass
class ExperimentSpec:
    mode: str
    seed: int


class ExperimentRunner:
    def __init__(self, settings: AppSettings) -> None:
        self.logger = logging.getLogger("alife_sim.runner")
        self.settings = settings
        self.metrics_engine = MetricsEngine()

    def run_many(self, specs: Iterable[ExperimentSpec]) -> list[dict]:
        rows: list[dict] = []
        specs_list = list(specs)
        self.logger.info("Starting batch execution: run_count=%d", len(specs_list))
        batch_start = time.perf_counter()
        for idx, spec in enumerate(specs_list, start=1):
            self.logger.info(
                "Run queued: index=%d/%d mode=%s seed=%d",
                idx,
                len(specs_list),
                spec.mode,
                spec.seed,
            )
            rows.append(self.run_one(spec.mode, spec.seed))
        metrics_path = self.metrics_engine.write_metrics_csv(
            self.settings.output_dir, rows, filename="metrics.csv"
        )
        self.logger.info(
            "Batch completed in %.2fs. Aggregate metrics at %s",
            time.perf_counter() - batch_start,
            metrics_path,
        )
        return rows

    def run_one(self, mode: str, seed: int) -> dict:
        run_id = self._run_id(mode, seed)
        run_start = time.perf_counter()
        self.logger.info("Starting run: %s", run_id)
        sim = EcosystemSimulator(self.settings, seed=seed, mode=mode, run_id=run_id)
        try:
            sim.run(self.settings.simulation.ticks)
            run_metrics = self.metrics_engine.compute(sim)
            history = sim.population_history
        finally:
            sim.close()
        self.logger.info("Metrics computed for run: %s -> %s", run_id, run_metrics)
        self._write_run_artifacts(run_id, run_metrics, history)
        self.logger.info(
            "Completed run: %s in %.2fs", run_id, time.perf_counter() - run_start
        )
        return {"run_id": run_id, "mode": mode, "seed": seed, **run_metrics}

    def _write_run_artifacts(self, run_id: str, run_metrics: dict, history: list[dict]) -> None:
        run_dir = self.settings.output_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=True)
        (run_dir / "population_history.json").write_text(
            json.dumps(history, indent=2, ensure_ascii=True), encoding="utf-8"
        )
        (run_dir / "metrics.json").write_text(
            json.dumps(run_metrics, indent=2, ensure_ascii=True), encoding="utf-8"
        )

    def _run_id(self, mode: str, seed: int) -> str:
        ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        return f"{ts}_{mode}_seed{seed}"


def parse_seed_list(raw: str) -> list[int]:
    out: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        out.append(int(part))
    return out


def build_specs(modes: list[str], seeds: list[int]) -> list[ExperimentSpec]:
    return [ExperimentSpec(mode=mode, seed=seed) for mode in modes for seed in seeds]
