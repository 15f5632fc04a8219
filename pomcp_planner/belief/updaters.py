"""
Belief updaters and particle reinvigorators.

An updater turns a prior belief plus an action/observation pair into a
posterior. The planner uses one updater inside the tree (to give each new
observation node a belief) and one between real decisions (to advance the
root after acting in the world).

Updaters:
- TreeUpdater: reuses the already simulated child node as the posterior
- NoBeliefUpdater: stores a marker meaning "no belief tracked here"
- PlannerFedParticles: an empty particle collection that the planner fills
  with the states it simulates through the node
- any external BeliefUpdater subclass, e.g. an exact filter

Reinvigorators repopulate particle collections that are empty or were never
simulated.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Hashable, Iterable, Optional
import logging

from pomcp_planner.belief.particles import NO_BELIEF, ParticleCollection
from pomcp_planner.errors import ParticleDepletionError, ReinvigorationError
from pomcp_planner.tree.node import BeliefNode, uses_states_from_planner

logger = logging.getLogger(__name__)


class BeliefUpdater(ABC):
    """
    Abstract belief updater.

    Implementations must not mutate ``belief``; the search relies on the
    parent belief staying intact while new branches are created.
    """

    @abstractmethod
    def update(self, belief: Any, action: Hashable, observation: Hashable) -> Any:
        """Return the posterior belief after ``action`` and ``observation``."""


class NoBeliefUpdater(BeliefUpdater):
    """Updater used when the tree should not carry a belief per node."""

    def update(self, belief: Any, action: Hashable, observation: Hashable) -> Any:
        return NO_BELIEF


class PlannerFedParticles(BeliefUpdater):
    """
    Gives each new node an empty particle collection.

    The collection is filled by the states the planner pushes into it while
    simulating through the node, so the tree ends up holding a particle
    filtered posterior for every simulated branch.
    """

    def update(self, belief: Any, action: Hashable, observation: Hashable) -> ParticleCollection:
        return ParticleCollection()


class ParticleReinvigorator(BeliefUpdater):
    """
    Abstract reinvigorator for particle collection beliefs.

    Used inside the tree, a reinvigorator gives new nodes an empty particle
    collection (filled by planner pushes). Between decisions, the
    :class:`TreeUpdater` calls it to refill depleted collections and to build
    a belief for observations the search never produced.

    Both hooks must be deterministic given their inputs and any generator
    passed to the reinvigorator when it was constructed.
    """

    def update(self, belief: Any, action: Hashable, observation: Hashable) -> ParticleCollection:
        return ParticleCollection()

    @abstractmethod
    def reinvigorate(
        self,
        particles: ParticleCollection,
        old_node: BeliefNode,
        action: Hashable,
        observation: Hashable,
    ) -> ParticleCollection:
        """Repopulate an empty collection reached by ``action`` and ``observation``."""

    @abstractmethod
    def handle_unseen_observation(
        self,
        old_node: BeliefNode,
        action: Hashable,
        observation: Hashable,
    ) -> ParticleCollection:
        """Build initial particles for an observation the search never simulated."""


class FixedParticleReinvigorator(ParticleReinvigorator):
    """
    Domain-naive reinvigorator that adds a fixed set of representative particles.

    Args:
        particles: States added whenever a collection needs repopulating
        copies: How many times the representative set is added
    """

    def __init__(self, particles: Iterable[Any], copies: int = 1):
        self.particles = list(particles)
        if not self.particles:
            raise ValueError("FixedParticleReinvigorator needs at least one particle")
        if copies <= 0:
            raise ValueError("copies must be positive")
        self.copies = copies

    def reinvigorate(self, particles, old_node, action, observation):
        refilled = particles.copy()
        refilled.extend(self.particles * self.copies)
        return refilled

    def handle_unseen_observation(self, old_node, action, observation):
        return ParticleCollection(self.particles * self.copies)


def _checked(result: Any, action: Hashable, observation: Hashable) -> ParticleCollection:
    if not isinstance(result, ParticleCollection):
        raise ReinvigorationError(
            f"Reinvigorator returned {type(result).__name__} for action {action!r} "
            f"and observation {observation!r}; expected a ParticleCollection"
        )
    if result.is_depleted():
        raise ReinvigorationError(
            f"Reinvigorator returned no particles for action {action!r} "
            f"and observation {observation!r}"
        )
    return result


class TreeUpdater(BeliefUpdater):
    """
    Advances the root between real decisions by recycling the search tree.

    The posterior for ``(action, observation)`` is the observation node the
    search already built, with its particles and statistics intact. When
    that node is missing or its particles are depleted, the optional
    reinvigorator is asked to repair it; without one the update fails with
    :class:`ParticleDepletionError`.

    Args:
        reinvigorator: Optional reinvigorator used to repair depleted beliefs
    """

    def __init__(self, reinvigorator: Optional[ParticleReinvigorator] = None):
        self.reinvigorator = reinvigorator

    def update(self, belief: Any, action: Hashable, observation: Hashable) -> BeliefNode:
        if not isinstance(belief, BeliefNode):
            raise TypeError(
                f"TreeUpdater needs the BeliefNode used for the last search, "
                f"got {type(belief).__name__}"
            )

        child = belief.child(action, observation)

        if child is None:
            if self.reinvigorator is None:
                logger.warning("Observation %r after action %r was never simulated", observation, action)
                raise ParticleDepletionError(action, observation, reason="observation was never simulated")
            particles = _checked(
                self.reinvigorator.handle_unseen_observation(belief, action, observation),
                action, observation,
            )
            logger.debug("Synthesized %d particles for unseen observation %r", len(particles), observation)
            action_node = belief.children.get(action)
            if action_node is None:
                action_node = belief.add_action(action)
            return BeliefNode.for_observation(observation, particles, action_node)

        if isinstance(child.belief, ParticleCollection) and child.belief.is_depleted():
            if self.reinvigorator is None:
                logger.warning("Particles for observation %r after action %r are depleted", observation, action)
                raise ParticleDepletionError(action, observation, reason="particle collection is empty")
            child.belief = _checked(
                self.reinvigorator.reinvigorate(child.belief, belief, action, observation),
                action, observation,
            )
            child.collects_planner_states = uses_states_from_planner(child.belief)
            logger.debug("Reinvigorated observation %r to %d particles", observation, len(child.belief))

        return child


def default_node_updater(name: str) -> BeliefUpdater:
    """Build the in-tree updater named by ``POMCPConfig.node_belief_updater``."""
    if name == "particles":
        return PlannerFedParticles()
    if name == "none":
        return NoBeliefUpdater()
    raise ValueError(f"Unknown node belief updater: {name}")


def default_updater(name: str, reinvigorator: Optional[ParticleReinvigorator] = None) -> BeliefUpdater:
    """Build the between-decision updater named by ``POMCPConfig.belief_updater``."""
    if name == "tree":
        return TreeUpdater(reinvigorator)
    if name == "none":
        return NoBeliefUpdater()
    raise ValueError(f"Unknown belief updater: {name}")
