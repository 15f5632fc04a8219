#!/usr/bin/env python
"""
Tests for the POMCP search: simulation, selection, expansion and statistics.
"""
import math
import unittest

import numpy as np

from pomcp_planner.config import POMCPConfig
from pomcp_planner.errors import (
    ConfigurationError, EmptyActionSetError, NoActionAvailableError
)
from pomcp_planner.belief.particles import ParticleCollection
from pomcp_planner.planner import POMCPPlanner
from pomcp_planner.problem import sparse_actions
from pomcp_planner.rollout import RolloutEstimator, ValueEstimator, ZeroValueEstimator
from pomcp_planner.tree.node import ActionNode, BeliefNode, NodeKind
from pomcp_planner.tree.search import (
    best_action, count_nodes, get_action_statistics, get_principal_variation,
    pomcp_search, select_action_node, simulate, tree_depth, ucb_score
)

from pomdp_fixtures import (
    CountingBelief, CountingUpdater, CyclingBelief, HiddenBoolPOMDP, NoActionPOMDP,
    RootOnlyActionsPOMDP, SeededHiddenBoolPOMDP, TigerPOMDP, iter_belief_nodes
)


def hidden_bool_planner(**config_kwargs):
    config = POMCPConfig(**{"tree_queries": 5, "c": 1.0, "max_depth": 3, "seed": 0, **config_kwargs})
    return POMCPPlanner(HiddenBoolPOMDP(), config, estimator=ZeroValueEstimator())


class FailingEstimator(ValueEstimator):

    def estimate(self, problem, state, node, depth, rng):
        raise RuntimeError("estimator failed")


class TestGoldenSearch(unittest.TestCase):
    """Reproducible outcome of a small search on the hidden boolean problem."""

    def setUp(self):
        self.planner = hidden_bool_planner()
        self.root = BeliefNode.root(ParticleCollection([True]))
        self.action = self.planner.search(self.root, 5)

    def test_selected_action(self):
        self.assertEqual(self.action, "open")

    def test_root_statistics(self):
        listen = self.root.children["listen"]
        opened = self.root.children["open"]

        # The first simulation only expands the root
        self.assertEqual(self.root.n, 4)
        self.assertEqual(listen.n, 1)
        self.assertAlmostEqual(listen.v, -1.0)
        self.assertEqual(opened.n, 3)
        self.assertAlmostEqual(opened.v, 18.7)

    def test_tree_shape(self):
        self.assertEqual(count_nodes(self.root), 13)
        self.assertEqual(tree_depth(self.root), 3)

        after_open = self.root.child("open", True)
        self.assertIs(after_open.kind, NodeKind.OBSERVATION)
        self.assertIs(after_open.parent, self.root.children["open"])
        self.assertEqual(after_open.n, 2)
        self.assertEqual(len(after_open.belief), 2)

    def test_root_particles_collect_planner_states(self):
        self.assertEqual(len(self.root.belief), 5)
        self.assertTrue(all(self.root.belief))

    def test_principal_variation(self):
        pv = get_principal_variation(self.root)
        self.assertEqual([(a, o) for a, o, _ in pv], [("open", True), ("open", True), ("open", True)])


class TestGoldenBranchingSearch(unittest.TestCase):
    """Small search where the hidden state, and so the observation, alternates."""

    def setUp(self):
        self.planner = hidden_bool_planner(max_depth=2)
        self.root = BeliefNode.root(CyclingBelief([True, False]))
        self.action = self.planner.search(self.root, 6)

    def test_selected_action(self):
        self.assertEqual(self.action, "listen")

    def test_root_statistics(self):
        listen = self.root.children["listen"]
        opened = self.root.children["open"]

        self.assertEqual(self.root.n, 5)
        self.assertEqual(listen.n, 4)
        self.assertAlmostEqual(listen.v, -21.25)
        self.assertEqual(opened.n, 1)
        self.assertAlmostEqual(opened.v, -100.0)

    def test_listen_branches_on_both_observations(self):
        listen = self.root.children["listen"]
        self.assertEqual(list(listen.children), [True, False])

        for observation in (True, False):
            child = listen.children[observation]
            self.assertEqual(child.n, 1)
            self.assertEqual(list(child.belief), [observation])
            self.assertAlmostEqual(child.children["open"].v, 10.0 if observation else -100.0)

    def test_tree_shape(self):
        self.assertEqual(count_nodes(self.root), 14)
        self.assertEqual(tree_depth(self.root), 2)
        self.assertEqual(list(self.root.children["open"].children), [False])


class TestTieBreak(unittest.TestCase):
    """Equal scores go to the action enumerated last."""

    def test_best_action_after_expansion_only(self):
        planner = hidden_bool_planner()
        self.assertEqual(planner.search(ParticleCollection([True]), 1), "open")

    def test_best_action_follows_enumeration_order(self):
        problem = HiddenBoolPOMDP(actions=["open", "listen"])
        planner = POMCPPlanner(problem, POMCPConfig(seed=0), estimator=ZeroValueEstimator())
        self.assertEqual(planner.search(ParticleCollection([True]), 1), "listen")

    def test_select_action_node_ties(self):
        node = BeliefNode.root(ParticleCollection([True]))
        node.add_action("a")
        node.add_action("b")
        self.assertEqual(select_action_node(node, 1.0).action, "b")


class TestUCBScore(unittest.TestCase):

    def test_unvisited_child_before_second_visit(self):
        child = ActionNode("a", n=0, v=2.5)
        self.assertEqual(ucb_score(0, child, 1.0), 2.5)
        self.assertEqual(ucb_score(1, child, 1.0), 2.5)

    def test_unvisited_child_later(self):
        self.assertEqual(ucb_score(2, ActionNode("a"), 1.0), math.inf)

    def test_visited_child(self):
        child = ActionNode("a", n=2, v=1.0)
        expected = 1.0 + 3.0 * math.sqrt(math.log(10) / 2)
        self.assertAlmostEqual(ucb_score(10, child, 3.0), expected)

    def test_seeded_child_under_unvisited_parent(self):
        self.assertEqual(ucb_score(0, ActionNode("a", n=3, v=4.0), 1.0), 4.0)


class TestSimulate(unittest.TestCase):

    def test_running_mean_matches_backpropagated_returns(self):
        planner = POMCPPlanner(
            TigerPOMDP(), POMCPConfig(c=10.0, max_depth=6, seed=7),
            estimator=RolloutEstimator(max_steps=10),
        )
        root = BeliefNode.root(planner.problem.initial_belief())
        returns = {a: [] for a in TigerPOMDP.ACTIONS}

        for _ in range(300):
            before = {a: child.n for a, child in root.children.items()}
            total = simulate(planner, root, root.sample(planner.rng), 0)
            for a, child in root.children.items():
                if child.n != before.get(a, 0):
                    returns[a].append(total)

        for a, child in root.children.items():
            self.assertEqual(child.n, len(returns[a]))
            self.assertAlmostEqual(child.v, float(np.mean(returns[a])), places=9)

        self.assertEqual(root.n, 299)

    def test_belief_visits_equal_action_visits(self):
        planner = POMCPPlanner(TigerPOMDP(), POMCPConfig(tree_queries=200, seed=3))
        root = BeliefNode.root(planner.problem.initial_belief())
        planner.search(root, 200)

        for node in iter_belief_nodes(root):
            self.assertEqual(node.n, sum(a.n for a in node.children.values()))

    def test_cutoffs_return_zero(self):
        node = BeliefNode.root(ParticleCollection([True]))

        self.assertEqual(simulate(hidden_bool_planner(max_depth=2), node, True, 2), 0.0)
        # 0.9 ** 7 is below eps
        self.assertEqual(simulate(hidden_bool_planner(max_depth=20, eps=0.5), node, True, 7), 0.0)
        self.assertFalse(node.is_expanded())

    def test_terminal_state_is_not_expanded(self):
        planner = POMCPPlanner(TigerPOMDP(), POMCPConfig(seed=0))
        node = BeliefNode.root(ParticleCollection(["done"]))

        self.assertEqual(simulate(planner, node, "done", 0), 0.0)
        self.assertFalse(node.is_expanded())

    def test_seeded_action_statistics(self):
        planner = POMCPPlanner(SeededHiddenBoolPOMDP(), POMCPConfig(seed=0), estimator=ZeroValueEstimator())
        root = BeliefNode.root(ParticleCollection([True]))

        simulate(planner, root, True, 0)
        self.assertEqual(root.children["open"].n, 3)
        self.assertEqual(root.children["open"].v, 5.0)

        self.assertEqual(simulate(planner, root, True, 0), 10.0)
        self.assertEqual(root.children["open"].n, 4)
        self.assertAlmostEqual(root.children["open"].v, 6.25)
        self.assertEqual(root.children["listen"].n, 0)


class TestPlannerStateCapture(unittest.TestCase):
    """Beliefs that consume planner states receive one push per backpropagation."""

    def test_pushes_follow_traversed_paths(self):
        updater = CountingUpdater()
        planner = POMCPPlanner(
            HiddenBoolPOMDP(), POMCPConfig(max_depth=4, seed=0),
            estimator=ZeroValueEstimator(), node_updater=updater,
        )
        root_belief = CountingBelief(True)
        root = BeliefNode.root(root_belief)
        planner.search(root, 7)

        self.assertEqual(len(root_belief.pushed), 6)
        self.assertTrue(updater.created)
        for node in iter_belief_nodes(root):
            self.assertTrue(node.collects_planner_states)
            self.assertEqual(len(node.belief.pushed), node.n)

    def test_no_belief_nodes_are_not_pushed(self):
        planner = hidden_bool_planner(node_belief_updater="none")
        root = BeliefNode.root(ParticleCollection([True]))
        planner.search(root, 10)

        child = root.child("open", True)
        self.assertFalse(child.collects_planner_states)
        with self.assertRaises(ConfigurationError):
            child.sample(planner.rng)


class TestSearchErrors(unittest.TestCase):

    def test_zero_budget(self):
        planner = hidden_bool_planner()
        with self.assertRaises(NoActionAvailableError):
            planner.search(ParticleCollection([True]), 0)

    def test_terminal_root_has_no_actions(self):
        planner = POMCPPlanner(TigerPOMDP(), POMCPConfig(tree_queries=10, seed=0))
        with self.assertRaises(NoActionAvailableError):
            planner.action(ParticleCollection(["done"]))

    def test_empty_action_set(self):
        planner = POMCPPlanner(NoActionPOMDP(), POMCPConfig(seed=0), estimator=ZeroValueEstimator())
        root = BeliefNode.root(ParticleCollection([True]))
        with self.assertRaises(EmptyActionSetError):
            planner.search(root, 3)
        self.assertFalse(root.is_expanded())

    def test_failed_branch_is_detached(self):
        planner = POMCPPlanner(RootOnlyActionsPOMDP(), POMCPConfig(seed=0), estimator=ZeroValueEstimator())
        root = BeliefNode.root(ParticleCollection([True]))
        with self.assertRaises(EmptyActionSetError):
            planner.search(root, 3)

        opened = root.children["open"]
        self.assertEqual(opened.children, {})
        self.assertEqual(opened.n, 0)
        self.assertEqual(root.n, 0)
        self.assertEqual(count_nodes(root), 3)

    def test_failed_estimate_leaves_node_unexpanded(self):
        planner = POMCPPlanner(HiddenBoolPOMDP(), POMCPConfig(seed=0), estimator=FailingEstimator())
        root = BeliefNode.root(ParticleCollection([True]))
        with self.assertRaises(RuntimeError):
            simulate(planner, root, True, 0)
        self.assertFalse(root.is_expanded())

    def test_empty_action_set_is_a_configuration_error(self):
        self.assertTrue(issubclass(EmptyActionSetError, ConfigurationError))
        self.assertTrue(issubclass(NoActionAvailableError, ConfigurationError))

    def test_best_action_on_unexpanded_node(self):
        with self.assertRaises(NoActionAvailableError):
            best_action(BeliefNode.root(ParticleCollection([True])))


class TestSparseActions(unittest.TestCase):

    def test_subset_in_enumeration_order(self):
        planner = POMCPPlanner(TigerPOMDP(), POMCPConfig(num_sparse_actions=2, seed=11))
        root = BeliefNode.root(planner.problem.initial_belief())
        planner.search(root, 20)

        actions = list(root.children)
        self.assertEqual(len(actions), 2)
        self.assertEqual(actions, [a for a in TigerPOMDP.ACTIONS if a in actions])

    def test_all_actions_when_unbounded(self):
        rng = np.random.default_rng(0)
        self.assertEqual(sparse_actions(TigerPOMDP(), None, 0, rng), TigerPOMDP.ACTIONS)
        self.assertEqual(sparse_actions(TigerPOMDP(), None, 5, rng), TigerPOMDP.ACTIONS)

    def test_reproducible_with_seed(self):
        first = sparse_actions(TigerPOMDP(), None, 1, np.random.default_rng(42))
        second = sparse_actions(TigerPOMDP(), None, 1, np.random.default_rng(42))
        self.assertEqual(first, second)


class TestSearchStatistics(unittest.TestCase):

    def test_stats_and_action_statistics(self):
        planner = POMCPPlanner(TigerPOMDP(), POMCPConfig(seed=5))
        root = BeliefNode.root(ParticleCollection(["left"] * 10))
        action, stats = pomcp_search(planner, root, 100)

        self.assertEqual(stats["iterations"], 100)
        self.assertEqual(stats["node_count"], count_nodes(root))
        self.assertEqual(set(stats["action_visits"]), set(TigerPOMDP.ACTIONS))
        self.assertEqual(sum(stats["action_visits"].values()), root.n)

        action_stats = get_action_statistics(root)
        self.assertEqual(action_stats[action]["value"], stats["action_values"][action])
        self.assertIn("exploration", action_stats["listen"])

    def test_actions_with_equal_str_are_kept_apart(self):
        planner = POMCPPlanner(HiddenBoolPOMDP(actions=[1, "1"]), POMCPConfig(seed=0), estimator=ZeroValueEstimator())
        root = BeliefNode.root(ParticleCollection([True]))
        _, stats = pomcp_search(planner, root, 10)

        self.assertEqual(set(stats["action_visits"]), {1, "1"})
        self.assertEqual(sum(stats["action_visits"].values()), root.n)
        self.assertEqual(set(get_action_statistics(root)), {1, "1"})


class TestTigerDecisions(unittest.TestCase):

    def test_opens_safe_door_when_tiger_position_is_known(self):
        planner = POMCPPlanner(TigerPOMDP(), POMCPConfig(tree_queries=300, seed=2))
        action = planner.action(ParticleCollection(["left"] * 20))

        self.assertEqual(action, "open-right")
        self.assertEqual(planner.last_root.children["open-right"].v, 10.0)


if __name__ == "__main__":
    unittest.main()
