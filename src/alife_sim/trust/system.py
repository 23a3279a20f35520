from __future__ import annotations

from alife_sim.memory.social_memory import KnownAgent, SocialMemory

NEUTRAL_TRUST = 0.5
ACCURATE_BONUS = 0.1
INACCURATE_PENALTY = 0.2


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class TrustSystem:
    """Scalar trust derived from verified social claims.

    Trust is never stored; it is recomputed from the verification records in
    an agent's social memory.
    """

    def score(self, entry: KnownAgent) -> float:
        trust = NEUTRAL_TRUST
        for v in entry.verifications():
            trust += ACCURATE_BONUS if v.accurate else -INACCURATE_PENALTY
        return clamp(trust)

    def average(self, memory: SocialMemory) -> float:
        if not memory.known_agents:
            return NEUTRAL_TRUST
        scores = self.scores(memory)
        return sum(scores.values()) / len(scores)

    def scores(self, memory: SocialMemory) -> dict[str, float]:
        return {agent_id: self.score(entry) for agent_id, entry in memory.known_agents.items()}

    @staticmethod
    def indicator(avg_trust: float) -> str:
        if avg_trust > 0.6:
            return "trusted"
        if avg_trust < 0.4:
            return "distrusted"
        return "neutral"
