import pytest

from alife_sim.agents.cognition import ReasoningEngine, ReasoningRequest, Thought
from alife_sim.agents.core import CausalState
from alife_sim.config.settings import ReasoningSettings
from alife_sim.engine import ReasoningDispatcher
from alife_sim.utils.types import ActionType, Personality


@pytest.fixture
def make_request(make_obs):
    def _make(tick: int = 1, cooldown: int = 0, lifespan: int = 200, **obs) -> ReasoningRequest:
        return ReasoningRequest(
            agent_id="causal_0",
            tick=tick,
            observation=make_obs(**obs),
            personality=Personality.CAUTIOUS,
            max_lifespan=lifespan,
            reproduction_cooldown=cooldown,
            nearby_threats=0,
            confidence=0.75,
        )

    return _make


def test_hungry_agent_forages(make_request):
    result = ReasoningEngine().reason(make_request(energy=20.0, nearest_resource_distance=5.0))
    assert [t.step for t in result.thoughts] == [1, 2, 3, 4, 5]
    assert result.thoughts[-1].content.startswith("Decision: forage. Reasoning:")
    assert result.goals[0].goal == "find_food"
    assert result.intent.action is ActionType.FORAGE
    assert result.intent.speed == 0.9
    assert result.confidence == 0.75


def test_infected_neighbours_trigger_avoidance(make_request):
    result = ReasoningEngine().reason(make_request(energy=80.0, nearby_infected=2))
    assert result.goals[0].goal == "avoid_infection"
    assert result.risk.level == "moderate"
    assert result.intent.action is ActionType.FLEE
    assert result.intent.speed == 0.8


def test_mature_rested_agent_reproduces(make_request):
    result = ReasoningEngine().reason(make_request(energy=80.0, age=40))
    assert [g.goal for g in result.goals] == ["reproduce", "explore"]
    assert result.intent.action is ActionType.REPRODUCE
    assert result.intent.speed == 0.3


def test_default_is_explore(make_request):
    result = ReasoningEngine().reason(make_request(energy=50.0))
    assert result.intent.action is ActionType.EXPLORE
    assert result.risk.level == "low"


def test_high_risk(make_request):
    risk = ReasoningEngine().assess_risks(
        make_request(energy=10.0, nearby_infected=2, nearby_count=6, age=190)
    )
    assert risk.score == 3 + 4 + 1 + 2
    assert risk.level == "high"
    assert "advanced age" in risk.factors


def test_unparseable_conclusion_explores():
    intent = ReasoningEngine.to_intent([Thought(5, "conclusion", "no verdict here")])
    assert intent.action is ActionType.EXPLORE


def test_dispatcher_applies_result_in_order(make_request):
    dispatcher = ReasoningDispatcher(ReasoningSettings())
    first, second = CausalState(Personality.SOCIAL), CausalState(Personality.CURIOUS)
    try:
        assert dispatcher.schedule(first, make_request(energy=20.0, nearest_resource_distance=4.0))
        assert dispatcher.schedule(second, make_request(energy=50.0))
        assert not dispatcher.schedule(first, make_request())
        assert first.queued_action is None

        assert dispatcher.resolve(tick=1) == 2
        assert dispatcher.in_flight == 0
        assert not first.pending_reasoning
        assert first.queued_action.action is ActionType.FORAGE
        assert second.queued_action.action is ActionType.EXPLORE
        assert first.decision_count == 1
        assert first.reasoning_history[0]["action"] == "FORAGE"
    finally:
        dispatcher.close()


class _BrokenEngine(ReasoningEngine):
    def reason(self, request):
        raise RuntimeError("boom")


def test_failed_job_only_clears_pending(make_request):
    dispatcher = ReasoningDispatcher(ReasoningSettings(), engine=_BrokenEngine())
    owner = CausalState(Personality.SOCIAL)
    try:
        dispatcher.schedule(owner, make_request())
        assert dispatcher.resolve(tick=1) == 0
        assert dispatcher.failed_count == 1
        assert owner.pending_reasoning is False
        assert owner.queued_action is None
    finally:
        dispatcher.close()


def test_close_cancels_in_flight_jobs(make_request):
    dispatcher = ReasoningDispatcher(ReasoningSettings())
    owner = CausalState(Personality.SOCIAL)
    dispatcher.schedule(owner, make_request())
    dispatcher.close()
    assert dispatcher.in_flight == 0
    assert owner.pending_reasoning is False
    dispatcher.close()
