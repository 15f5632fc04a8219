"""
Problem model interface.

The planner never defines decision problems itself. It consumes any object
implementing :class:`POMDP`: a discount factor, a terminal predicate, a
generative step function, an action enumeration and an initial belief,
plus optional hooks that seed the statistics of freshly created action
nodes with domain knowledge.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Hashable, List, Sequence, Tuple, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from pomcp_planner.tree.node import BeliefNode


class POMDP(ABC):
    """
    Abstract generative model of a partially observable decision problem.

    States may be any Python object. Actions and observations are used as
    dictionary keys inside the search tree and must be hashable.
    """

    @abstractmethod
    def discount(self) -> float:
        """Discount factor in (0, 1]."""

    @abstractmethod
    def is_terminal(self, state: Any) -> bool:
        """Whether ``state`` ends the episode."""

    @abstractmethod
    def generate(self, state: Any, action: Hashable, rng: np.random.Generator) -> Tuple[Any, Hashable, float]:
        """
        Simulate one step of the problem.

        Args:
            state: Current state
            action: Action to take
            rng: Random generator to draw transition and observation noise from

        Returns:
            Tuple of (next state, observation, reward)
        """

    @abstractmethod
    def actions(self, node: 'BeliefNode' = None) -> Sequence[Hashable]:
        """Actions available at ``node`` (or in general when ``node`` is None)."""

    @abstractmethod
    def initial_belief(self) -> Any:
        """Belief over the starting state. Must provide ``sample(rng)``."""

    def init_n(self, node: 'BeliefNode', action: Hashable) -> int:
        """Initial visit count for a new action node."""
        return 0

    def init_v(self, node: 'BeliefNode', action: Hashable) -> float:
        """Initial value estimate for a new action node."""
        return 0.0


def sparse_actions(
    problem: POMDP,
    node: 'BeliefNode',
    num_actions: int,
    rng: np.random.Generator,
) -> List[Hashable]:
    """
    Candidate actions to expand at ``node``.

    Returns every action when ``num_actions`` is 0 or covers the whole action
    set, otherwise a random subset of ``num_actions`` actions kept in the
    order the problem enumerated them.
    """
    all_actions = list(problem.actions(node))
    if num_actions <= 0 or num_actions >= len(all_actions):
        return all_actions
    picked = np.sort(rng.choice(len(all_actions), size=num_actions, replace=False))
    return [all_actions[i] for i in picked]
