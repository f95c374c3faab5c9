from typing import Any, Callable

from bapomdp.planners.core import Planner
from bapomdp.planners.random import RandomPlanner

PlannerConstructor = Callable[[Any], Planner]

# planners that consume the hypothesis states but live outside of this package
EXTERNAL_PLANNERS = ("ts", "po-uct")

_planners: dict[str, PlannerConstructor] = {
    "random": lambda config: RandomPlanner(),
}


def register_planner(name: str, constructor: PlannerConstructor) -> None:
    _planners[name] = constructor


def make_ba_planner(name: str, config: Any = None) -> Planner:
    if name in _planners:
        return _planners[name](config)
    elif name in EXTERNAL_PLANNERS:
        raise NotImplementedError(f"Planner {name!r} has not been registered.")
    else:
        raise ValueError(f"Incorrect planner provided: {name!r}.")
