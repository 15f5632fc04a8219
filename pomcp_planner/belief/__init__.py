"""
Belief representations and updaters.

Beliefs only need to be sampleable. Particle collections additionally collect
the states the planner simulates through them, and can be repaired by a
reinvigorator when they run empty.
"""

from pomcp_planner.belief.particles import Belief, ParticleCollection, NO_BELIEF
from pomcp_planner.belief.updaters import (
    BeliefUpdater,
    TreeUpdater,
    NoBeliefUpdater,
    PlannerFedParticles,
    ParticleReinvigorator,
    FixedParticleReinvigorator,
)

__all__ = [
    'Belief',
    'ParticleCollection',
    'NO_BELIEF',
    'BeliefUpdater',
    'TreeUpdater',
    'NoBeliefUpdater',
    'PlannerFedParticles',
    'ParticleReinvigorator',
    'FixedParticleReinvigorator',
]
