"""
POMCP planner.

This module provides the POMCPPlanner class, the object callers use to pick
actions under state uncertainty. It binds a problem model to a search
configuration, a leaf value estimator, the belief updaters and a seeded
random generator, and keeps statistics about its searches.
"""
from typing import Any, Dict, Hashable, List, Optional, Tuple, Union
import json
import logging
import time

import numpy as np
from rich.console import Console
from rich.table import Table

from pomcp_planner.belief.updaters import (
    BeliefUpdater, ParticleReinvigorator, default_node_updater, default_updater
)
from pomcp_planner.config import POMCPConfig
from pomcp_planner.problem import POMDP
from pomcp_planner.rollout import RolloutEstimator, RolloutPolicy, ValueEstimator
from pomcp_planner.tree.node import BeliefNode
from pomcp_planner.tree.search import (
    pomcp_search, get_action_statistics, get_principal_variation
)

logger = logging.getLogger(__name__)


class POMCPPlanner:
    """
    Online planner for partially observable problems.

    Each call to :meth:`action` runs a POMCP search from the current belief
    and returns the action with the highest estimated value. Between real
    decisions, :meth:`update` advances the belief; with the default tree
    updater this reuses the subtree the search already built.
    """

    def __init__(
        self,
        problem: POMDP,
        config: Optional[POMCPConfig] = None,
        estimator: Optional[ValueEstimator] = None,
        updater: Optional[BeliefUpdater] = None,
        node_updater: Optional[BeliefUpdater] = None,
        reinvigorator: Optional[ParticleReinvigorator] = None,
        name: str = "POMCP",
    ):
        """
        Initialize a POMCP planner.

        Args:
            problem: Problem model to plan in
            config: Search configuration parameters
            estimator: Leaf value estimator (random rollouts by default)
            updater: Updater used between real decisions; overrides
                ``config.belief_updater``
            node_updater: Updater giving new tree nodes their belief; overrides
                ``config.node_belief_updater``
            reinvigorator: Repairs depleted particle beliefs. Also used as the
                in-tree updater when ``node_updater`` is not given.
            name: Name of the planner
        """
        self.problem = problem
        self.config = config or POMCPConfig()
        self.name = name
        self.rng = np.random.default_rng(self.config.seed)

        self.estimator = estimator or RolloutEstimator(
            max_steps=self.config.rollout_max_steps, eps=self.config.eps
        )
        self.reinvigorator = reinvigorator
        if node_updater is not None:
            self.node_updater = node_updater
        elif reinvigorator is not None:
            self.node_updater = reinvigorator
        else:
            self.node_updater = default_node_updater(self.config.node_belief_updater)
        self.updater = updater or default_updater(self.config.belief_updater, reinvigorator)

        # Statistics from the most recent search
        self.last_stats: Dict[str, Any] = {}

        # History of all actions and their statistics
        self.action_history: List[Tuple[Hashable, Dict[str, Any]]] = []

        # Root node of the last search
        self.last_root: Optional[BeliefNode] = None

    def action(self, belief: Any) -> Hashable:
        """
        Select an action for ``belief`` using the configured simulation budget.

        Args:
            belief: Current belief, raw or a node returned by :meth:`update`

        Returns:
            Selected action
        """
        return self.search(belief, self.config.tree_queries)

    def search(self, belief: Any, tree_queries: int) -> Hashable:
        """
        Run ``tree_queries`` simulations from ``belief`` and return the best action.

        Args:
            belief: Current belief, raw or already a tree node
            tree_queries: Number of simulations to run

        Returns:
            Selected action
        """
        root = belief if isinstance(belief, BeliefNode) else BeliefNode.root(belief)
        self.last_root = root

        start_time = time.time()
        action, stats = pomcp_search(self, root, tree_queries)
        stats["total_time"] = time.time() - start_time

        self.last_stats = stats
        self.action_history.append((action, stats))

        if self.config.verbose:
            self._print_search_info(action, stats)

        return action

    def update(self, belief: Any, action: Hashable, observation: Hashable) -> Any:
        """
        Advance the belief after acting in the world.

        Args:
            belief: Belief the last decision was made from (the tree node for
                the default tree updater)
            action: Action that was taken
            observation: Observation that was received

        Returns:
            Belief to plan from next
        """
        new_belief = self.updater.update(belief, action, observation)
        logger.debug("Advanced belief with action %r and observation %r", action, observation)
        return new_belief

    def _print_search_info(self, action: Hashable, stats: Dict[str, Any]) -> None:
        """
        Print information about the search.

        Args:
            action: Selected action
            stats: Search statistics
        """
        console = Console()
        console.print(f"\n[bold]{self.name}[/bold] selected: {action}")
        console.print(
            f"Queries: {stats['iterations']}  "
            f"Time: {stats['time_elapsed']:.3f}s ({stats['iterations_per_second']:.1f} q/s)  "
            f"Nodes: {stats['node_count']}  Depth: {stats['max_depth']}"
        )

        table = Table(title="Root actions")
        table.add_column("Action")
        table.add_column("Visits", justify="right")
        table.add_column("Value", justify="right")
        actions_by_visits = sorted(
            stats['action_visits'].items(),
            key=lambda x: x[1],
            reverse=True
        )
        for root_action, visits in actions_by_visits:
            table.add_row(str(root_action), str(visits), f"{stats['action_values'][root_action]:.3f}")
        console.print(table)

    def get_last_statistics(self) -> Dict[str, Any]:
        """Statistics from the most recent search."""
        return self.last_stats

    def get_principal_variation(self) -> List[Tuple[Hashable, Hashable, float]]:
        """Most visited (action, observation, value) path from the last search."""
        if self.last_root is None:
            return []

        return get_principal_variation(self.last_root)

    def get_action_statistics(self) -> Dict[str, Dict[str, float]]:
        """Statistics for all root actions from the last search."""
        if self.last_root is None:
            return {}

        return get_action_statistics(self.last_root, self.config.c)

    def reset_statistics(self) -> None:
        """Reset all statistics."""
        self.last_stats = {}
        self.action_history = []
        self.last_root = None

    def save_statistics(self, filename: str) -> None:
        """
        Save statistics to a file.

        Args:
            filename: Name of the file to save to
        """
        # Convert actions to strings for JSON serialization
        history = []
        for action, stats in self.action_history:
            history.append({
                "action": str(action),
                "stats": {k: v for k, v in stats.items() if not isinstance(v, dict)}
            })

        data = {
            "planner_name": self.name,
            "config": self.config.to_dict(),
            "history": history,
            "total_actions": len(self.action_history)
        }

        with open(filename, 'w') as f:
            json.dump(data, f, indent=2)

    def __str__(self) -> str:
        return f"{self.name} (POMCP, {self.config.tree_queries} tree queries)"


def solve(
    config: POMCPConfig,
    problem: POMDP,
    rollout: Union[ValueEstimator, RolloutPolicy, None] = None,
    **kwargs: Any,
) -> POMCPPlanner:
    """
    Build a planner for ``problem``.

    Args:
        config: Search configuration parameters
        problem: Problem model to plan in
        rollout: Leaf value estimator, or a rollout policy to wrap in a
            :class:`RolloutEstimator` (random rollouts when None)
        **kwargs: Forwarded to :class:`POMCPPlanner`

    Returns:
        POMCPPlanner
    """
    if isinstance(rollout, RolloutPolicy):
        estimator = RolloutEstimator(rollout, max_steps=config.rollout_max_steps, eps=config.eps)
    else:
        estimator = rollout
    return POMCPPlanner(problem, config=config, estimator=estimator, **kwargs)
