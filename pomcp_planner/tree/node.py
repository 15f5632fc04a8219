"""
Belief/action tree nodes for POMCP.

The search tree alternates between two kinds of records:

- ``BeliefNode``: the root of a search or an observation branch. It holds a
  belief, a visit count and a mapping from action to ``ActionNode``.
- ``ActionNode``: an action taken from a belief node. It holds the running
  value estimate, a visit count and a mapping from observation to the
  ``BeliefNode`` reached after seeing that observation.

Root and observation nodes share one dataclass tagged with ``NodeKind`` so
traversal code handles both the same way. Children dictionaries keep
insertion order, which is what every tie-break in the search relies on.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Hashable, Optional


def uses_states_from_planner(belief: Any) -> bool:
    """Whether ``belief`` wants the planner to push simulated states into it."""
    return bool(getattr(belief, "uses_states_from_planner", False))


class NodeKind(Enum):
    """The two kinds of belief node."""
    ROOT = auto()
    OBSERVATION = auto()


@dataclass(eq=False)
class BeliefNode:
    """
    A node holding a belief, reached either as a search root or by an observation.

    ``parent`` is a navigation link to the owning action node and is ``None``
    for roots. ``collects_planner_states`` is read from the belief once, when
    the node is created.
    """
    kind: NodeKind
    belief: Any
    n: int = 0
    observation: Optional[Hashable] = None
    parent: Optional['ActionNode'] = field(default=None, repr=False)
    children: Dict[Hashable, 'ActionNode'] = field(default_factory=dict, repr=False)
    collects_planner_states: bool = False

    @classmethod
    def root(cls, belief: Any) -> 'BeliefNode':
        """Wrap a belief in a fresh, unexpanded root node."""
        return cls(
            kind=NodeKind.ROOT,
            belief=belief,
            collects_planner_states=uses_states_from_planner(belief),
        )

    @classmethod
    def for_observation(
        cls,
        observation: Hashable,
        belief: Any,
        parent: 'ActionNode',
    ) -> 'BeliefNode':
        """Create an observation node and attach it under ``parent``."""
        node = cls(
            kind=NodeKind.OBSERVATION,
            belief=belief,
            observation=observation,
            parent=parent,
            collects_planner_states=uses_states_from_planner(belief),
        )
        parent.children[observation] = node
        return node

    @property
    def is_root(self) -> bool:
        return self.kind is NodeKind.ROOT

    def is_expanded(self) -> bool:
        return bool(self.children)

    def add_action(self, action: Hashable, n: int = 0, v: float = 0.0) -> 'ActionNode':
        """Create the action child for ``action`` with seeded statistics."""
        child = ActionNode(action=action, n=n, v=v, parent=self)
        self.children[action] = child
        return child

    def child(self, action: Hashable, observation: Hashable) -> Optional['BeliefNode']:
        """Return the node reached by ``action`` then ``observation``, if simulated."""
        action_node = self.children.get(action)
        if action_node is None:
            return None
        return action_node.children.get(observation)

    def sample(self, rng) -> Any:
        """Sample a state from this node's belief."""
        return self.belief.sample(rng)

    def __str__(self) -> str:
        label = "root" if self.is_root else f"obs={self.observation!r}"
        return f"BeliefNode({label}, n={self.n}, actions={len(self.children)})"


@dataclass(eq=False)
class ActionNode:
    """
    An action taken from a belief node.

    ``v`` is the incremental mean of every return backpropagated through the
    node and is only ever changed by :meth:`record`.
    """
    action: Hashable
    n: int = 0
    v: float = 0.0
    parent: Optional[BeliefNode] = field(default=None, repr=False)
    children: Dict[Hashable, BeliefNode] = field(default_factory=dict, repr=False)

    def record(self, value: float) -> None:
        """Count one visit and fold ``value`` into the running mean."""
        self.n += 1
        self.v += (value - self.v) / self.n

    def __str__(self) -> str:
        return (f"ActionNode(action={self.action!r}, n={self.n}, "
                f"v={self.v:.3f}, observations={len(self.children)})")
