"""
Closed-loop episode runner.

Runs a planner against a true hidden state: plan, act, observe, advance the
belief, repeat. Useful for evaluating a planner configuration on a problem.
"""
from dataclasses import dataclass, field
from typing import Any, Hashable, List, Optional, Tuple
import logging

import numpy as np
from tqdm import tqdm

from pomcp_planner.belief.updaters import TreeUpdater
from pomcp_planner.planner import POMCPPlanner
from pomcp_planner.problem import POMDP

logger = logging.getLogger(__name__)


@dataclass
class EpisodeResult:
    """Outcome of one episode."""
    steps: int = 0
    discounted_return: float = 0.0
    history: List[Tuple[Hashable, Hashable, float]] = field(default_factory=list)
    """(action, observation, reward) for every step taken"""

    @property
    def undiscounted_return(self) -> float:
        return sum(reward for _, _, reward in self.history)


def run_episode(
    planner: POMCPPlanner,
    problem: POMDP,
    true_state: Any,
    max_steps: int = 100,
    belief: Any = None,
    rng: Optional[np.random.Generator] = None,
) -> EpisodeResult:
    """
    Play one episode with ``planner`` from ``true_state``.

    Args:
        planner: Planner choosing the actions
        problem: Problem used to step the true state
        true_state: Hidden starting state
        max_steps: Maximum number of real steps
        belief: Starting belief (``problem.initial_belief()`` when None)
        rng: Generator for the real transitions, separate from the planner's

    Returns:
        EpisodeResult with the discounted return and the step history
    """
    rng = rng if rng is not None else np.random.default_rng()
    belief = belief if belief is not None else problem.initial_belief()
    gamma = problem.discount()

    result = EpisodeResult()
    weight = 1.0
    state = true_state

    steps = range(max_steps)
    if planner.config.show_progress:
        steps = tqdm(steps, desc=f"Episode ({planner.name})")

    for _ in steps:
        if problem.is_terminal(state):
            break

        action = planner.action(belief)
        state, observation, reward = problem.generate(state, action, rng)

        result.history.append((action, observation, reward))
        result.discounted_return += weight * reward
        result.steps += 1
        weight *= gamma

        logger.debug("Step %d: action %r, observation %r, reward %.3f",
                     result.steps, action, observation, reward)

        if problem.is_terminal(state):
            break

        # The tree updater advances the searched node, not the raw belief
        if isinstance(planner.updater, TreeUpdater):
            belief = planner.last_root
        belief = planner.update(belief, action, observation)

    return result
