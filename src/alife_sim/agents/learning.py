from __future__ import annotations

import math
import random

from alife_sim.utils.types import ACTION_ORDER, ActionType, Intent, Observation


class QLearningPolicy:
    """Tabular Q-learning over intent types.

    Only the action *type* is learned; the speed parameter sampled with each
    selection stays outside the value function.
    """

    def __init__(
        self,
        rng: random.Random,
        epsilon: float = 0.15,
        alpha: float = 0.1,
        gamma: float = 0.9,
    ) -> None:
        self.rng = rng
        self.epsilon = epsilon
        self.alpha = alpha
        self.gamma = gamma
        self.q_table: dict[tuple[str, ActionType], float] = {}
        self.last_state: str | None = None
        self.last_action: ActionType | None = None

    def select(self, obs: Observation) -> Intent:
        state = self.discretize(obs)

        # On-policy update for the transition that led here
        if self.last_state is not None and self.last_action is not None:
            self.update(self.last_state, self.last_action, self.reward(obs), state)

        if self.rng.random() < self.epsilon:
            action = self._random_action()
        else:
            action = self.best_action(state)

        self.last_state = state
        self.last_action = action

        if action is ActionType.REPRODUCE:
            speed = 0.2
        else:
            speed = self.rng.random() * 0.5 + 0.5
        return Intent(action=action, speed=speed)

    @staticmethod
    def discretize(obs: Observation) -> str:
        energy_bucket = math.floor(obs.energy / 25)
        nearby_bucket = min(3, obs.nearby_count)
        infected_bucket = min(2, obs.nearby_infected)
        resource_bucket = 0 if obs.nearest_resource_distance < 5 else 1
        return (
            f"{energy_bucket}_{nearby_bucket}_{infected_bucket}_"
            f"{resource_bucket}_{obs.status.value}"
        )

    @staticmethod
    def reward(obs: Observation) -> float:
        reward = obs.energy * 0.01
        reward -= obs.nearby_infected * 2
        if obs.energy < 50 and obs.nearest_resource_distance < 10:
            reward += 5
        reward -= obs.age * 0.001
        return reward

    def q_value(self, state: str, action: ActionType) -> float:
        return self.q_table.get((state, action), 0.0)

    def update(
        self, state: str, action: ActionType, reward: float, next_state: str
    ) -> None:
        current = self.q_value(state, action)
        target = reward + self.gamma * self.max_q(next_state)
        self.q_table[(state, action)] = current + self.alpha * (target - current)

    def max_q(self, state: str) -> float:
        return max(self.q_value(state, a) for a in ACTION_ORDER)

    def best_action(self, state: str) -> ActionType:
        best = ACTION_ORDER[0]
        best_q = -math.inf
        for action in ACTION_ORDER:
            q = self.q_value(state, action)
            if q > best_q:
                best_q = q
                best = action
        return best

    def _random_action(self) -> ActionType:
        return ACTION_ORDER[int(self.rng.random() * len(ACTION_ORDER)) % len(ACTION_ORDER)]
