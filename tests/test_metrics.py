import csv

from alife_sim.metrics.engine import MetricsEngine, PopulationStats
from alife_sim.utils.types import AgentKind, HealthStatus
from alife_sim.world.simulator import EcosystemSimulator


def test_stats_for_empty_population():
    assert PopulationStats.from_agents([]) == PopulationStats()


def test_stats_counts(make_agent):
    talker = make_agent("c0", AgentKind.CAUSAL, age=20, energy=40.0)
    talker.causal.last_communication = {"timestamp": 15, "type": "help", "message": "", "recipients": 1}
    talker.causal.decision_count = 3
    quiet = make_agent("c1", AgentKind.CAUSAL, age=20, status=HealthStatus.INFECTED)
    quiet.causal.last_communication = {"timestamp": 5, "type": "help", "message": "", "recipients": 0}
    agents = [
        make_agent("player", AgentKind.PLAYER, energy=100.0),
        talker,
        quiet,
        make_agent("rl_0", status=HealthStatus.RECOVERED, age=40, energy=60.0),
    ]
    stats = PopulationStats.from_agents(agents)
    assert (stats.susceptible, stats.infected, stats.recovered, stats.total) == (2, 1, 1, 4)
    assert stats.causal_agents == 2 and stats.rl_agents == 1
    assert stats.avg_age == 20
    assert stats.avg_energy == 75
    assert stats.reasoning_events == 3
    assert stats.active_messages == 1


def test_run_metrics_and_csv(tmp_path):
    sim = EcosystemSimulator(seed=2)
    try:
        sim.run(12)
        engine = MetricsEngine()
        row = engine.compute(sim)
    finally:
        sim.close()
    assert row["ticks_survived"] == 12
    assert row["final_population"] == len(sim.agents)
    assert row["peak_population"] >= row["final_population"]
    assert 0.0 <= row["mean_trust"] <= 1.0

    path = engine.write_metrics_csv(tmp_path, [{"run_id": "r", **row}])
    with path.open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["run_id"] == "r"
    assert int(rows[0]["ticks_survived"]) == 12


def test_empty_rows_write_nothing(tmp_path):
    path = MetricsEngine().write_metrics_csv(tmp_path / "out", [])
    assert not path.exists()
