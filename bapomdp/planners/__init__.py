from .core import Planner
from .random import RandomPlanner
from .factory import make_ba_planner, register_planner

__all__ = [
    'Planner',
    'RandomPlanner',
    'make_ba_planner',
    'register_planner',
]
