from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from alife_sim.utils.types import ActionType, HealthStatus, Intent, Observation, Personality

_DECISION_RE = re.compile(r"Decision: (\w+)")

PLAN_ALTERNATIVES = ("explore", "rest", "forage", "socialize", "isolate")

# Conclusion verb -> (intent type, speed, short reasoning)
_ACTION_MAP: dict[str, tuple[ActionType, float, str]] = {
    "forage": (ActionType.FORAGE, 0.9, "Moving toward food source"),
    "avoid": (ActionType.FLEE, 0.8, "Avoiding infection risk"),
    "reproduce": (ActionType.REPRODUCE, 0.3, "Seeking reproductive opportunity"),
    "explore": (ActionType.EXPLORE, 0.5, "Exploratory behavior"),
}


@dataclass(frozen=True)
class ReasoningRequest:
    """Everything a reasoning job may look at, frozen when it is scheduled."""

    agent_id: str
    tick: int
    observation: Observation
    personality: Personality
    max_lifespan: int
    reproduction_cooldown: int
    nearby_threats: int
    confidence: float


@dataclass(frozen=True)
class Goal:
    goal: str
    priority: str
    urgency: float


@dataclass(frozen=True)
class RiskAssessment:
    level: str
    score: float
    factors: tuple[str, ...]


@dataclass(frozen=True)
class ActionPlan:
    action: str
    description: str
    expected_outcome: str
    justification: str
    confidence: float
    alternatives: tuple[str, ...] = ()


@dataclass(frozen=True)
class Thought:
    step: int
    type: str
    content: str


@dataclass
class ReasoningResult:
    agent_id: str
    tick: int
    intent: Intent
    thoughts: list[Thought]
    conclusion: str
    confidence: float
    goals: list[Goal] = field(default_factory=list)
    risk: RiskAssessment | None = None

    def as_history_entry(self) -> dict:
        return {
            "tick": self.tick,
            "action": self.intent.action.value,
            "conclusion": self.conclusion,
            "confidence": round(self.confidence, 3),
        }


class ReasoningEngine:
    """Simulated five-stage chain of thought for causal agents.

    No model is called: each stage is a fixed rule set over the request, and
    the final stage writes a ``Decision: <verb>`` line that is parsed back into
    an intent.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger("alife_sim.cognition")

    def reason(self, request: ReasoningRequest) -> ReasoningResult:
        obs = request.observation
        thoughts: list[Thought] = []

        situation = self.analyze_situation(request)
        thoughts.append(Thought(1, "situation_analysis", situation))

        goals = self.define_goals(request)
        primary = goals[0] if goals else None
        thoughts.append(Thought(
            2,
            "goal_prioritization",
            f"Primary goal: {primary.goal if primary else 'survive'} "
            f"(urgency: {primary.urgency if primary else 1:.1f}). This takes priority "
            f"because {self.explain_goal(primary, obs)}.",
        ))

        risk = self.assess_risks(request)
        thoughts.append(Thought(
            3,
            "risk_assessment",
            f"Risk assessment: {risk.level} risk. Main concerns: "
            f"{', '.join(risk.factors) or 'none'}. Risk tolerance based on "
            f"{request.personality.value} personality.",
        ))

        plan = self.plan_action(request, primary)
        thoughts.append(Thought(
            4,
            "action_planning",
            f"Action plan: {plan.description}. Expected outcome: {plan.expected_outcome}. "
            f"Alternatives considered: {', '.join(plan.alternatives)}.",
        ))
        thoughts.append(Thought(
            5,
            "conclusion",
            f"Decision: {plan.action}. Reasoning: {plan.justification}",
        ))

        intent = self.to_intent(thoughts)
        self.logger.debug(
            "REASON agent=%s tick=%d risk=%s decision=%s",
            request.agent_id, request.tick, risk.level, intent.action.value,
        )
        return ReasoningResult(
            agent_id=request.agent_id,
            tick=request.tick,
            intent=intent,
            thoughts=thoughts,
            conclusion=plan.justification,
            confidence=request.confidence,
            goals=goals,
            risk=risk,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def analyze_situation(self, request: ReasoningRequest) -> str:
        obs = request.observation
        if obs.energy < 30:
            energy_status = "critical"
        elif obs.energy > 70:
            energy_status = "abundant"
        else:
            energy_status = "moderate"
        if obs.nearby_count < 3:
            density = "sparse"
        elif obs.nearby_count < 7:
            density = "moderate"
        else:
            density = "crowded"
        return (
            f"Current situation: Energy at {obs.energy:.0f}% ({energy_status}), "
            f"{obs.nearby_infected} infected nearby, {request.nearby_threats} within "
            f"contact range, nearest resource {round(obs.nearest_resource_distance)} "
            f"units away, population density {density}."
        )

    def define_goals(self, request: ReasoningRequest) -> list[Goal]:
        obs = request.observation
        goals: list[Goal] = []
        if obs.energy < 40:
            goals.append(Goal("find_food", "high", 10 - obs.energy / 10))
        if obs.nearby_infected > 0:
            goals.append(Goal("avoid_infection", "high", obs.nearby_infected * 2))
        if obs.energy > 60 and obs.age > 30:
            goals.append(Goal("reproduce", "medium", 3))
        goals.append(Goal("explore", "low", 1))
        # sorted() is stable: equal urgency keeps rule order
        return sorted(goals, key=lambda g: g.urgency, reverse=True)

    @staticmethod
    def explain_goal(goal: Goal | None, obs: Observation) -> str:
        if goal is None:
            return "survival is the baseline imperative"
        if goal.goal == "find_food":
            return f"energy is {'critically' if obs.energy < 20 else 'dangerously'} low"
        if goal.goal == "avoid_infection":
            return "infection would severely compromise survival chances"
        if goal.goal == "reproduce":
            return "energy reserves allow for genetic contribution to next generation"
        return "exploration maintains adaptive flexibility"

    def assess_risks(self, request: ReasoningRequest) -> RiskAssessment:
        obs = request.observation
        factors: list[str] = []
        score = 0.0
        if obs.energy < 30:
            factors.append("energy depletion")
            score += 3
        if obs.nearby_infected > 0:
            factors.append("infection exposure")
            score += obs.nearby_infected * 2
        if obs.nearby_count > 5:
            factors.append("resource competition")
            score += 1
        if obs.age > request.max_lifespan * 0.8:
            factors.append("advanced age")
            score += 2
        if score < 2:
            level = "low"
        elif score < 5:
            level = "moderate"
        else:
            level = "high"
        return RiskAssessment(level=level, score=score, factors=tuple(factors))

    def plan_action(self, request: ReasoningRequest, goal: Goal | None) -> ActionPlan:
        obs = request.observation
        if goal is not None and goal.goal == "find_food" and obs.nearest_resource_distance < 10:
            plan = ActionPlan(
                action="forage",
                description="Move toward nearest resource",
                expected_outcome="Energy restoration",
                justification=f"Food is accessible ({round(obs.nearest_resource_distance)} units)",
                confidence=0.8,
            )
        elif obs.nearby_infected > 0 and obs.status is HealthStatus.SUSCEPTIBLE:
            plan = ActionPlan(
                action="avoid",
                description="Maintain distance from infected agents",
                expected_outcome="Reduce infection probability",
                justification=f"{obs.nearby_infected} infected nearby",
                confidence=0.9,
            )
        elif obs.energy > 70 and request.reproduction_cooldown == 0 and obs.age > 30:
            plan = ActionPlan(
                action="reproduce",
                description="Seek reproduction opportunity",
                expected_outcome="Genetic propagation",
                justification="High energy reserves and maturity",
                confidence=0.7,
            )
        else:
            plan = ActionPlan(
                action="explore",
                description="Continue current behavior",
                expected_outcome="Maintain status quo",
                justification="Default action when no clear priority emerges",
                confidence=0.5,
            )
        alternatives = tuple(a for a in PLAN_ALTERNATIVES if a != plan.action)
        return ActionPlan(
            action=plan.action,
            description=plan.description,
            expected_outcome=plan.expected_outcome,
            justification=plan.justification,
            confidence=plan.confidence,
            alternatives=alternatives,
        )

    @staticmethod
    def to_intent(thoughts: list[Thought]) -> Intent:
        verb = "explore"
        for thought in thoughts:
            if thought.type != "conclusion":
                continue
            match = _DECISION_RE.search(thought.content)
            if match:
                verb = match.group(1)
            break
        action, speed, reasoning = _ACTION_MAP.get(verb, _ACTION_MAP["explore"])
        return Intent(action=action, speed=speed, reasoning=reasoning)
