from .core import BAPOMDPPrior, BAPOMDPState, FBAPOMDPPrior, FBAPOMDPState, STRUCTURES
from .collision_avoidance import CollisionAvoidanceTablePrior, CollisionAvoidanceFactoredPrior

__all__ = [
    'BAPOMDPPrior',
    'BAPOMDPState',
    'FBAPOMDPPrior',
    'FBAPOMDPState',
    'STRUCTURES',
    'CollisionAvoidanceTablePrior',
    'CollisionAvoidanceFactoredPrior',
]
