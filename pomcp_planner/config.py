"""
Configuration for the POMCP planner.

This module defines the configuration parameters for online POMCP search,
including the simulation budget, the exploration constant, the depth and
discount cutoffs, and which belief updaters are used inside and outside
the tree.
"""
from dataclasses import dataclass, fields
from typing import Optional, Literal, Union, Dict, Any, ClassVar
from pathlib import Path
import json


@dataclass
class POMCPConfig:
    """
    Configuration parameters for POMCP search.

    This class defines all tunable parameters for the planner,
    with validation and sensible defaults.
    """
    # Search parameters
    tree_queries: int = 1000
    """Number of simulations run from the root per decision"""

    c: float = 1.0
    """UCB exploration constant"""

    eps: float = 0.01
    """Simulations stop once discount**depth falls below this weight"""

    max_depth: int = 20
    """Maximum depth of a single simulation"""

    num_sparse_actions: int = 0
    """Maximum number of actions expanded at a node (0 = all actions)"""

    rollout_max_steps: int = 100
    """Step limit for the default rollout estimator"""

    # Belief handling
    belief_updater: Literal["tree", "none"] = "tree"
    """Updater used between real decisions ('tree' recycles the search tree)"""

    node_belief_updater: Literal["particles", "none"] = "particles"
    """Belief carried by new observation nodes inside the tree"""

    # Reproducibility and output
    seed: Optional[int] = None
    """Seed for the planner's random generator (None = fresh entropy)"""

    verbose: bool = False
    """Whether to print a summary table after each decision"""

    show_progress: bool = False
    """Whether to show a progress bar over the simulation budget"""

    # Constants
    BELIEF_UPDATERS: ClassVar[tuple] = ("tree", "none")
    NODE_BELIEF_UPDATERS: ClassVar[tuple] = ("particles", "none")

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.tree_queries <= 0:
            raise ValueError("tree_queries must be positive")

        if self.c < 0:
            raise ValueError("c must be non-negative")

        if self.eps < 0:
            raise ValueError("eps must be non-negative")

        if self.max_depth <= 0:
            raise ValueError("max_depth must be positive")

        if self.num_sparse_actions < 0:
            raise ValueError("num_sparse_actions must be non-negative (0 = all actions)")

        if self.rollout_max_steps <= 0:
            raise ValueError("rollout_max_steps must be positive")

        if self.belief_updater not in self.BELIEF_UPDATERS:
            raise ValueError("belief_updater must be 'tree' or 'none'")

        if self.node_belief_updater not in self.NODE_BELIEF_UPDATERS:
            raise ValueError("node_belief_updater must be 'particles' or 'none'")

    @classmethod
    def default(cls) -> 'POMCPConfig':
        """
        Get the default configuration.

        Returns:
            Default POMCPConfig object
        """
        return cls()

    @classmethod
    def fast(cls) -> 'POMCPConfig':
        """
        Get a configuration optimized for speed (fewer simulations, shallow search).

        Returns:
            Fast POMCPConfig object
        """
        return cls(
            tree_queries=100,
            max_depth=10,
            rollout_max_steps=20,
        )

    @classmethod
    def deep(cls) -> 'POMCPConfig':
        """
        Get a configuration optimized for deep search.

        Returns:
            Deep POMCPConfig object
        """
        return cls(
            tree_queries=10000,
            eps=0.001,
            max_depth=100,
            rollout_max_steps=200,
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'POMCPConfig':
        """
        Create a configuration from a dictionary.

        Args:
            config_dict: Dictionary of configuration parameters

        Returns:
            POMCPConfig object
        """
        # Filter out any keys that aren't valid parameters
        names = {f.name for f in fields(cls)}
        valid_params = {k: v for k, v in config_dict.items() if k in names}
        return cls(**valid_params)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a dictionary.

        Returns:
            Dictionary of configuration parameters
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'POMCPConfig':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def __str__(self) -> str:
        """
        Get a human-readable string representation.

        Returns:
            String representation
        """
        params = [f"{name}={value}" for name, value in self.to_dict().items()]
        return f"POMCPConfig({', '.join(params)})"
