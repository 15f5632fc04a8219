"""
Exceptions raised by the POMCP planner.

Every error aborts the current decision (``action``/``update``) and leaves the
tree usable, so callers can catch a specific type, adjust the configuration
and retry.
"""


class POMCPError(Exception):
    """Base class for all planner errors."""


class ConfigurationError(POMCPError, ValueError):
    """The planner, problem or belief was set up in a way search cannot use."""


class EmptyActionSetError(ConfigurationError):
    """A belief node was expanded but the problem produced no actions."""


class NoActionAvailableError(ConfigurationError):
    """The root has no action children to pick the best action from."""


class ParticleDepletionError(POMCPError):
    """
    A particle belief needed for an update is empty or was never simulated.

    Raised instead of silently falling back to an empty belief. The message
    lists the ways to recover.
    """

    def __init__(self, action=None, observation=None, reason: str = "no particles"):
        self.action = action
        self.observation = observation
        self.reason = reason
        if action is None and observation is None:
            where = f"Particle depletion ({reason})."
        else:
            where = (f"Particle depletion after action {action!r} and "
                     f"observation {observation!r} ({reason}).")
        super().__init__(
            f"{where} To fix this, either increase "
            f"tree_queries so the observation is simulated, supply a "
            f"ParticleReinvigorator, or use a belief that does not rely on "
            f"the tree's particles."
        )


class ReinvigorationError(POMCPError):
    """A reinvigorator returned an empty or invalid particle collection."""
