from typing import NamedTuple, Protocol

import chex

PRNGKey = chex.PRNGKey


class DomainSize(NamedTuple):
    """Cardinalities of the flat state, action and observation spaces.

    Attributes:
        num_states (int): Number of states in the enumerated state space.
        num_actions (int): Number of actions.
        num_observations (int): Number of observations.
    """
    num_states: int
    num_actions: int
    num_observations: int


class DomainFeatureSize(NamedTuple):
    """Per-feature cardinalities of the factored spaces.

    Attributes:
        state (tuple[int, ...]): Cardinality of every state feature, in feature order.
        action (int): Number of actions, the action being a single feature.
        observation (tuple[int, ...]): Cardinality of every observation feature.
    """
    state: tuple[int, ...]
    action: int
    observation: tuple[int, ...]


class Indexed(Protocol):
    """Anything with a dense index into a closed, enumerated space."""

    @property
    def index(self) -> int:
        r"""The dense index of the element."""


class State(Indexed, Protocol):
    pass


class Action(Indexed, Protocol):
    pass


class Observation(Indexed, Protocol):
    pass
