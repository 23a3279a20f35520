from __future__ import annotations

import logging
import os

from alife_sim.config.settings import AppSettings
from alife_sim.experiments.runner import ExperimentRunner, build_specs, parse_seed_list


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("alife_sim.entrypoint")

    settings = AppSettings.from_env()
    settings.output_dir.mkdir(parents=True, exist_ok=True)

    modes_raw = os.getenv("EXPERIMENT_MODES", "full_system,no_reasoning,no_messaging")
    seeds_raw = os.getenv("EXPERIMENT_SEEDS", "11,42,97")
    modes = [m.strip() for m in modes_raw.split(",") if m.strip()]
    seeds = parse_seed_list(seeds_raw)
    logger.info(
        "Loaded experiment plan: modes=%s seeds=%s ticks=%d total_runs=%d",
        modes,
        seeds,
        settings.simulation.ticks,
        len(modes) * len(seeds),
    )

    runner = ExperimentRunner(settings)
    runner.run_many(build_specs(modes, seeds))


if __name__ == "__main__":
    main()
