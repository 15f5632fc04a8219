"""
Partially Observable Monte Carlo Planning (POMCP) search.

This module implements the online search. Each simulation:
1. Samples a state from the root belief
2. Walks down the tree, choosing actions with a UCB criterion and
   observations by stepping the generative model
3. Expands the first unexpanded belief node it reaches and estimates the
   state's value there with the leaf estimator
4. Backpropagates the discounted return into every action node on the path

After the simulation budget is spent, the root action with the highest
value estimate is chosen.
"""
from __future__ import annotations
from typing import Any, Dict, Hashable, List, Optional, Tuple, TYPE_CHECKING
import logging
import math
import time

from tqdm import tqdm

from pomcp_planner.belief.updaters import ParticleReinvigorator
from pomcp_planner.belief.particles import ParticleCollection
from pomcp_planner.errors import EmptyActionSetError, NoActionAvailableError
from pomcp_planner.problem import sparse_actions
from pomcp_planner.tree.node import ActionNode, BeliefNode

if TYPE_CHECKING:
    from pomcp_planner.planner import POMCPPlanner

logger = logging.getLogger(__name__)


def pomcp_search(
    planner: 'POMCPPlanner',
    belief: Any,
    tree_queries: int,
) -> Tuple[Hashable, Dict[str, Any]]:
    """
    Run POMCP from ``belief`` and return the best root action.

    If ``belief`` is not already a :class:`BeliefNode` it is wrapped in a
    fresh root. The tree is mutated in place, so calling this again with the
    same node continues the search.

    Args:
        planner: Planner providing the problem, configuration and generator
        belief: Current belief, raw or already a tree node
        tree_queries: Number of simulations to run

    Returns:
        Tuple of (best action, search statistics)

    Raises:
        NoActionAvailableError: If the root has no action children afterwards
    """
    root = belief if isinstance(belief, BeliefNode) else BeliefNode.root(belief)

    start_time = time.time()
    queries = range(tree_queries)
    if planner.config.show_progress:
        queries = tqdm(queries, desc="POMCP search", leave=False)

    for _ in queries:
        state = root.sample(planner.rng)
        simulate(planner, root, state, 0)

    action = best_action(root)

    elapsed = time.time() - start_time
    stats: Dict[str, Any] = {
        "iterations": tree_queries,
        "time_elapsed": elapsed,
        "iterations_per_second": tree_queries / max(0.001, elapsed),
        "node_count": count_nodes(root),
        "max_depth": tree_depth(root),
        "action_visits": {a: child.n for a, child in root.children.items()},
        "action_values": {a: child.v for a, child in root.children.items()},
    }
    logger.debug("Searched %d queries in %.3fs, best action %r", tree_queries, elapsed, action)

    return action, stats


def simulate(planner: 'POMCPPlanner', node: BeliefNode, state: Any, depth: int) -> float:
    """
    Move one simulation forward a single step from ``node`` and update it.

    Args:
        planner: Planner providing the problem, configuration and generator
        node: Belief node the simulation is at
        state: Concrete state sampled for this simulation
        depth: Depth of ``node`` below the search root

    Returns:
        Discounted return of the simulation from ``node``
    """
    problem = planner.problem
    config = planner.config
    gamma = problem.discount()

    if (gamma ** depth < config.eps
            or problem.is_terminal(state)
            or depth >= config.max_depth):
        return 0.0

    if not node.is_expanded():
        expand_node(planner, node)
        try:
            value = planner.estimator.estimate(problem, state, node, depth, planner.rng)
        except BaseException:
            node.children.clear()
            raise
        return gamma ** depth * value

    action_node = select_action_node(node, config.c)
    action = action_node.action

    next_state, observation, reward = problem.generate(state, action, planner.rng)

    child = action_node.children.get(observation)
    is_new = child is None
    if is_new:
        child = BeliefNode.for_observation(
            observation, new_node_belief(planner, node, action, observation), action_node
        )
        logger.debug("New observation branch %r under action %r at depth %d", observation, action, depth)

    try:
        future = simulate(planner, child, next_state, depth + 1)
    except BaseException:
        # A branch whose first simulation failed was never simulated
        if is_new:
            del action_node.children[observation]
        raise
    total = reward + gamma * future

    if node.collects_planner_states:
        node.belief.push(state)

    node.n += 1
    action_node.record(total)

    return total


def expand_node(planner: 'POMCPPlanner', node: BeliefNode) -> List[ActionNode]:
    """
    Create the action children of an unexpanded node.

    Every sparse action gets an action node seeded with the problem's
    ``init_n``/``init_v`` hooks.

    Raises:
        EmptyActionSetError: If the problem offers no actions at ``node``
    """
    problem = planner.problem
    actions = sparse_actions(problem, node, planner.config.num_sparse_actions, planner.rng)
    if not actions:
        raise EmptyActionSetError(f"No actions available to expand {node}")

    return [node.add_action(a, problem.init_n(node, a), problem.init_v(node, a)) for a in actions]


def new_node_belief(planner: 'POMCPPlanner', node: BeliefNode, action: Hashable, observation: Hashable) -> Any:
    """Belief for a new observation node under ``node``. Leaves ``node.belief`` untouched."""
    updater = planner.node_updater
    if isinstance(updater, ParticleReinvigorator):
        return ParticleCollection()
    return updater.update(node.belief, action, observation)


def ucb_score(total_visits: int, child: ActionNode, c: float) -> float:
    """
    UCB score of an action child of a node visited ``total_visits`` times.

    An unvisited child scores its seeded value while the parent has at most
    one visit, and infinity afterwards.
    """
    if child.n == 0:
        return child.v if total_visits <= 1 else math.inf
    if total_visits == 0:
        return child.v
    return child.v + c * math.sqrt(math.log(total_visits) / child.n)


def select_action_node(node: BeliefNode, c: float) -> ActionNode:
    """
    Choose the action child with the highest UCB score.

    Ties go to the child that comes last in insertion order.
    """
    best_score = -math.inf
    best = None
    for child in node.children.values():
        score = ucb_score(node.n, child, c)
        if score >= best_score:
            best_score = score
            best = child
    if best is None:
        raise NoActionAvailableError(f"Cannot select an action from {node}")
    return best


def best_action(node: BeliefNode) -> Hashable:
    """
    Action of the child with the highest value estimate.

    Ties go to the child that comes last in insertion order.

    Raises:
        NoActionAvailableError: If ``node`` has no action children
    """
    best_value = -math.inf
    best: Optional[ActionNode] = None
    for child in node.children.values():
        if child.v >= best_value:
            best_value = child.v
            best = child
    if best is None:
        raise NoActionAvailableError(
            "The root has no action children; run at least one simulation "
            "that reaches expansion (tree_queries > 0)"
        )
    return best.action


def count_nodes(node: BeliefNode) -> int:
    """
    Count the belief and action nodes in the tree below ``node``.

    Args:
        node: Root node of the tree

    Returns:
        Total number of nodes
    """
    count = 1
    for action_node in node.children.values():
        count += 1
        for child in action_node.children.values():
            count += count_nodes(child)
    return count


def tree_depth(node: BeliefNode) -> int:
    """Number of belief levels below ``node`` (0 for a node without observation children)."""
    deepest = 0
    for action_node in node.children.values():
        for child in action_node.children.values():
            deepest = max(deepest, 1 + tree_depth(child))
    return deepest


def get_principal_variation(root: BeliefNode, max_depth: int = 10) -> List[Tuple[Hashable, Hashable, float]]:
    """
    Most visited path from the root.

    Follows the most visited action, then its most visited observation.

    Args:
        root: Root node of the tree
        max_depth: Maximum number of steps to follow

    Returns:
        List of (action, observation, value) triples
    """
    result = []
    current = root
    depth = 0

    while current.children and depth < max_depth:
        action_node = max(current.children.values(), key=lambda a: a.n)
        if not action_node.children:
            break
        child = max(action_node.children.values(), key=lambda b: b.n)
        result.append((action_node.action, child.observation, action_node.v))
        current = child
        depth += 1

    return result


def get_action_statistics(root: BeliefNode, c: float = 1.0) -> Dict[str, Dict[str, float]]:
    """
    Statistics for every action at ``root``.

    Args:
        root: Node whose action children are reported
        c: Exploration constant used for the reported UCB score

    Returns:
        Dictionary mapping actions to visits, value, UCB score and
        number of observation branches
    """
    return {
        action: {
            "visits": child.n,
            "value": child.v,
            "exploration": ucb_score(root.n, child, c),
            "observations": len(child.children),
        }
        for action, child in root.children.items()
    }
