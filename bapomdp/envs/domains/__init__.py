from .collision_avoidance import (
    CollisionAvoidanceEnv,
    CollisionAvoidanceState,
    CollisionAvoidanceAction,
    CollisionAvoidanceObservation,
    Version,
)

__all__ = [
    'CollisionAvoidanceEnv',
    'CollisionAvoidanceState',
    'CollisionAvoidanceAction',
    'CollisionAvoidanceObservation',
    'Version',
]
