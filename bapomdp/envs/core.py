from typing import NamedTuple

from bapomdp.core import (
    PRNGKey,
    State,
    Action,
    Observation,
    DomainSize,
    DomainFeatureSize,
)


class StepResult(NamedTuple):
    state: State
    observation: Observation
    reward: float
    terminal: bool


class POMDPEnv:
    """A discrete POMDP whose spaces are closed and fully enumerated.

    States, actions and observations are pooled by the environment for its
    whole lifetime: copying returns the same object and releasing is a no-op.
    Every sampling method takes an explicit random key.
    """

    domain_size: DomainSize
    domain_feature_size: DomainFeatureSize

    def state(self, index: int) -> State:
        raise NotImplementedError

    def action(self, index: int) -> Action:
        raise NotImplementedError

    def observation(self, index: int) -> Observation:
        raise NotImplementedError

    def sample_start_state(self, rng_key: PRNGKey) -> State:
        raise NotImplementedError

    def step(self, rng_key: PRNGKey, state: State, action: Action) -> StepResult:
        raise NotImplementedError

    def generate_random_action(self, rng_key: PRNGKey, state: State) -> Action:
        raise NotImplementedError

    def legal_actions(self, state: State) -> list[Action]:
        raise NotImplementedError

    def compute_observation_probability(
        self,
        observation: Observation,
        action: Action,
        new_state: State
    ) -> float:
        raise NotImplementedError

    def copy_state(self, state: State) -> State:
        return state

    def release_state(self, state: State) -> None:
        return None

    def copy_action(self, action: Action) -> Action:
        return action

    def release_action(self, action: Action) -> None:
        return None

    def copy_observation(self, observation: Observation) -> Observation:
        return observation

    def release_observation(self, observation: Observation) -> None:
        return None
