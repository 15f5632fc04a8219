"""
Toy problems and instrumented beliefs shared by the test modules.
"""
from typing import Any, List

from pomcp_planner.belief.particles import Belief, ParticleCollection
from pomcp_planner.belief.updaters import BeliefUpdater, ParticleReinvigorator
from pomcp_planner.problem import POMDP
from pomcp_planner.rollout import RolloutPolicy


class HiddenBoolPOMDP(POMDP):
    """
    Deterministic problem with a hidden boolean state.

    ``listen`` costs 1 and reveals the state, ``open`` pays 10 when the state
    is True and -100 otherwise. The state never changes and nothing is
    terminal, so search outcomes only depend on the tie-break rules.
    """

    def __init__(self, discount: float = 0.9, actions: List[str] = None):
        self._discount = discount
        self._actions = actions if actions is not None else ["listen", "open"]

    def discount(self):
        return self._discount

    def is_terminal(self, state):
        return False

    def generate(self, state, action, rng):
        if action == "listen":
            return state, state, -1.0
        return state, state, 10.0 if state else -100.0

    def actions(self, node=None):
        return self._actions

    def initial_belief(self):
        return ParticleCollection([True])


class SeededHiddenBoolPOMDP(HiddenBoolPOMDP):
    """HiddenBoolPOMDP with prior knowledge seeded into the ``open`` action."""

    def init_n(self, node, action):
        return 3 if action == "open" else 0

    def init_v(self, node, action):
        return 5.0 if action == "open" else 0.0


class TigerPOMDP(POMDP):
    """
    Tiger problem where opening a door ends the episode.

    The tiger is behind the left or right door. Listening costs 1 and hears
    the tiger's side correctly with probability 0.85. Opening the tiger's
    door costs 100, the other door pays 10.
    """
    ACTIONS = ["listen", "open-left", "open-right"]

    def __init__(self, discount: float = 0.95, accuracy: float = 0.85):
        self._discount = discount
        self.accuracy = accuracy

    def discount(self):
        return self._discount

    def is_terminal(self, state):
        return state == "done"

    def generate(self, state, action, rng):
        if action == "listen":
            if rng.random() < self.accuracy:
                observation = state
            else:
                observation = "right" if state == "left" else "left"
            return state, observation, -1.0
        opened = action.split("-")[1]
        reward = -100.0 if opened == state else 10.0
        return "done", "none", reward

    def actions(self, node=None):
        return self.ACTIONS

    def initial_belief(self):
        return ParticleCollection(["left", "right"] * 50)


class NoActionPOMDP(HiddenBoolPOMDP):
    """A misconfigured problem that offers no actions."""

    def actions(self, node=None):
        return []


class AlwaysOpen(RolloutPolicy):
    def action(self, problem, state, node, rng):
        return "open"


class CountingBelief(Belief):
    """Belief that always samples the same state and counts planner pushes."""
    uses_states_from_planner = True

    def __init__(self, state: Any = True):
        self.state = state
        self.pushed: List[Any] = []

    def sample(self, rng):
        return self.state

    def push(self, state):
        self.pushed.append(state)


class CountingUpdater(BeliefUpdater):
    """Gives every new tree node a fresh CountingBelief."""

    def __init__(self):
        self.created: List[CountingBelief] = []

    def update(self, belief, action, observation):
        new_belief = CountingBelief(observation)
        self.created.append(new_belief)
        return new_belief


def iter_belief_nodes(node):
    """Yield ``node`` and every belief node below it."""
    yield node
    for action_node in node.children.values():
        for child in action_node.children.values():
            yield from iter_belief_nodes(child)


class RootOnlyActionsPOMDP(HiddenBoolPOMDP):
    """Problem that offers actions at the root and nowhere else."""

    def actions(self, node=None):
        if node is None or node.is_root:
            return self._actions
        return []


class CyclingBelief(Belief):
    """Belief that returns its states in turn, independent of the generator."""

    def __init__(self, states):
        self.states = list(states)
        self._next = 0

    def sample(self, rng):
        state = self.states[self._next % len(self.states)]
        self._next += 1
        return state


class UntrackedParticles(ParticleCollection):
    """Particle collection that does not want planner states pushed into it."""
    uses_states_from_planner = False


class UntrackedReinvigorator(ParticleReinvigorator):
    """Refills beliefs with UntrackedParticles."""

    def reinvigorate(self, particles, old_node, action, observation):
        return UntrackedParticles([observation])

    def handle_unseen_observation(self, old_node, action, observation):
        return UntrackedParticles([observation])
