from typing import Protocol, Sequence, Union

from bapomdp.core import PRNGKey, Action
from bapomdp.envs.core import POMDPEnv
from bapomdp.priors.core import BAPOMDPState, FBAPOMDPState

Belief = Sequence[Union[BAPOMDPState, FBAPOMDPState]]


class Planner(Protocol):
    def select_action(self, rng_key: PRNGKey, env: POMDPEnv, belief: Belief) -> Action:
        r"""Pick the next action given the particles of the belief over hypothesis states."""
