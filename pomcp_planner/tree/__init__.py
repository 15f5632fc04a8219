"""
The POMCP search tree.

``node`` holds the belief/action node records; ``search`` holds the
simulation and selection routines that grow them.
"""

from pomcp_planner.tree.node import ActionNode, BeliefNode, NodeKind

__all__ = [
    'ActionNode',
    'BeliefNode',
    'NodeKind',
]
