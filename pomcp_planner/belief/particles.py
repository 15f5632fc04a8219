"""
Particle beliefs.

A belief is anything that can produce a concrete state when sampled. This
module defines the small belief interface used by the planner and the
particle collection, a belief approximated as a multiset of states.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Iterable, Iterator, List, Optional, TypeVar

import numpy as np

from pomcp_planner.errors import ConfigurationError, ParticleDepletionError

S = TypeVar("S")


class Belief(ABC):
    """
    Abstract base class for beliefs that can be used as a search root.

    Subclasses that want to receive every state visited by the planner's
    simulations set ``uses_states_from_planner = True`` and implement
    :meth:`push`.
    """
    uses_states_from_planner: ClassVar[bool] = False

    @abstractmethod
    def sample(self, rng: np.random.Generator) -> Any:
        """Draw one state using the given random generator."""

    def push(self, state: Any) -> None:
        """Receive a state simulated by the planner."""
        raise NotImplementedError(
            f"{type(self).__name__} does not accept states from the planner"
        )


class ParticleCollection(Belief, Generic[S]):
    """
    A belief represented by an ordered list of sampled states.

    Duplicates are allowed and stand for higher probability. The order only
    matters for reproducibility: sampling picks an index with the supplied
    generator.
    """
    uses_states_from_planner: ClassVar[bool] = True

    def __init__(self, particles: Optional[Iterable[S]] = None):
        self.particles: List[S] = list(particles) if particles is not None else []

    def sample(self, rng: np.random.Generator) -> S:
        if not self.particles:
            raise ParticleDepletionError(reason="cannot sample an empty particle collection")
        return self.particles[int(rng.integers(len(self.particles)))]

    def push(self, state: S) -> None:
        self.particles.append(state)

    def extend(self, states: Iterable[S]) -> None:
        self.particles.extend(states)

    def is_depleted(self) -> bool:
        return not self.particles

    def copy(self) -> 'ParticleCollection[S]':
        return ParticleCollection(self.particles)

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self) -> Iterator[S]:
        return iter(self.particles)

    def __contains__(self, state: object) -> bool:
        return state in self.particles

    def __repr__(self) -> str:
        return f"ParticleCollection(n={len(self.particles)})"


class _NoBelief(Belief):
    """Marker stored at tree nodes that do not track a belief."""

    def sample(self, rng: np.random.Generator) -> Any:
        raise ConfigurationError(
            "This node does not track a belief; use a belief updater that "
            "produces a sampleable belief for real observations"
        )

    def __repr__(self) -> str:
        return "NO_BELIEF"


NO_BELIEF = _NoBelief()
