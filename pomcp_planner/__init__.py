"""
POMCP Planner - online planning under state uncertainty.

This package implements Partially Observable Monte Carlo Planning. The
planner works by:

1. Sampling a state from the current belief
2. Simulating forward through a tree of actions and observations, choosing
   actions with a UCB criterion
3. Estimating the value of newly reached nodes with a rollout policy
4. Backpropagating discounted returns into running value estimates

After the simulation budget is spent it returns the root action with the best
value estimate. Tree nodes carry particle beliefs collected from the
simulations, so the subtree under the real action and observation can be
reused as the next root.
"""

__version__ = "0.1.0"
__author__ = "POMCP Planner Team"

from pomcp_planner.config import POMCPConfig
from pomcp_planner.errors import (
    POMCPError,
    ConfigurationError,
    EmptyActionSetError,
    NoActionAvailableError,
    ParticleDepletionError,
    ReinvigorationError,
)
from pomcp_planner.problem import POMDP, sparse_actions
from pomcp_planner.belief import (
    Belief,
    ParticleCollection,
    NO_BELIEF,
    BeliefUpdater,
    TreeUpdater,
    NoBeliefUpdater,
    PlannerFedParticles,
    ParticleReinvigorator,
    FixedParticleReinvigorator,
)
from pomcp_planner.tree import ActionNode, BeliefNode, NodeKind
from pomcp_planner.tree.search import pomcp_search, simulate
from pomcp_planner.rollout import (
    ValueEstimator,
    ZeroValueEstimator,
    RolloutPolicy,
    RandomRollout,
    RolloutEstimator,
)
from pomcp_planner.planner import POMCPPlanner, solve
from pomcp_planner.simulation import EpisodeResult, run_episode

# Version info as a tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split('.')))

# Default configuration
DEFAULT_CONFIG = POMCPConfig(
    tree_queries=1000,        # Simulations per decision
    c=1.0,                    # UCB exploration constant
    eps=0.01,                 # Minimum significant discount weight
    max_depth=20,             # Maximum simulation depth
    num_sparse_actions=0,     # Expand every action
)

__all__ = [
    'POMCPConfig',
    'POMCPError',
    'ConfigurationError',
    'EmptyActionSetError',
    'NoActionAvailableError',
    'ParticleDepletionError',
    'ReinvigorationError',
    'POMDP',
    'sparse_actions',
    'Belief',
    'ParticleCollection',
    'NO_BELIEF',
    'BeliefUpdater',
    'TreeUpdater',
    'NoBeliefUpdater',
    'PlannerFedParticles',
    'ParticleReinvigorator',
    'FixedParticleReinvigorator',
    'ActionNode',
    'BeliefNode',
    'NodeKind',
    'pomcp_search',
    'simulate',
    'ValueEstimator',
    'ZeroValueEstimator',
    'RolloutPolicy',
    'RandomRollout',
    'RolloutEstimator',
    'POMCPPlanner',
    'solve',
    'EpisodeResult',
    'run_episode',
    'DEFAULT_CONFIG',
]
