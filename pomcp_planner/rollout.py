"""
Leaf value estimation for POMCP.

When the search expands a belief node for the first time it does not recurse
further; instead it asks a value estimator how good the sampled state is.
The usual estimator runs a cheap rollout policy forward from the state and
returns the discounted sum of rewards.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Hashable, Optional, Sequence, TYPE_CHECKING

import numpy as np

from pomcp_planner.errors import EmptyActionSetError
from pomcp_planner.problem import POMDP

if TYPE_CHECKING:
    from pomcp_planner.tree.node import BeliefNode


class ValueEstimator(ABC):
    """Estimates the discounted future return of a state at a newly expanded node."""

    @abstractmethod
    def estimate(
        self,
        problem: POMDP,
        state: Any,
        node: 'BeliefNode',
        depth: int,
        rng: np.random.Generator,
    ) -> float:
        """
        Estimate the value of ``state``.

        The result is discounted from the leaf's point of view; the search
        multiplies it by ``discount**depth`` itself.
        """


class ZeroValueEstimator(ValueEstimator):
    """Treats every leaf as worth nothing. Useful for pure tree search and tests."""

    def estimate(self, problem, state, node, depth, rng) -> float:
        return 0.0


class RolloutPolicy(ABC):
    """Fallback policy used to play out a simulation below the tree."""

    @abstractmethod
    def action(
        self,
        problem: POMDP,
        state: Any,
        node: 'BeliefNode',
        rng: np.random.Generator,
    ) -> Hashable:
        """Choose the next rollout action."""


class RandomRollout(RolloutPolicy):
    """Uniformly random choice over the actions available at the leaf node."""

    def action(self, problem, state, node, rng):
        actions: Sequence[Hashable] = list(problem.actions(node))
        if not actions:
            raise EmptyActionSetError("Rollout policy found no actions to choose from")
        return actions[int(rng.integers(len(actions)))]


class RolloutEstimator(ValueEstimator):
    """
    Estimates a state's value by running a rollout policy.

    The playout stops when the state is terminal, after ``max_steps`` steps,
    or once the discount weight at the absolute depth falls below ``eps``.

    Args:
        policy: Rollout policy (random by default)
        max_steps: Maximum number of rollout steps
        eps: Minimum significant discount weight
    """

    def __init__(self, policy: Optional[RolloutPolicy] = None, max_steps: int = 100, eps: float = 0.0):
        if max_steps <= 0:
            raise ValueError("max_steps must be positive")
        self.policy = policy or RandomRollout()
        self.max_steps = max_steps
        self.eps = eps

    def estimate(self, problem, state, node, depth, rng) -> float:
        gamma = problem.discount()
        weight = 1.0
        total = 0.0

        for step in range(self.max_steps):
            if problem.is_terminal(state) or gamma ** (depth + step) < self.eps:
                break
            action = self.policy.action(problem, state, node, rng)
            state, _, reward = problem.generate(state, action, rng)
            total += weight * reward
            weight *= gamma

        return total
