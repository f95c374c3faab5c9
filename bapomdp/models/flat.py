from typing import NamedTuple

from jax import Array, random

from bapomdp.core import PRNGKey, DomainSize
from bapomdp.utils import normalize, resample_counts, sample_categorical


class BAFlatModel(NamedTuple):
    r"""Dirichlet pseudo-counts over the flat transition and observation tables.

    The transition counts $\chi(s, a, s')$ and observation counts
    $\chi(s', o)$ parameterize a Dirichlet per (state, action) and per next
    state. Every count vector has positive total mass.

    Attributes:
        transition_counts (Array): Counts with shape (S, A, S).
        observation_counts (Array): Counts with shape (S, O).
    """
    transition_counts: Array
    observation_counts: Array

    @property
    def domain_size(self) -> DomainSize:
        num_states, num_actions, _ = self.transition_counts.shape
        return DomainSize(num_states, num_actions, self.observation_counts.shape[-1])

    def transition_probabilities(self, state: int, action: int) -> Array:
        """The expected distribution over next states."""
        return normalize(self.transition_counts[state, action])

    def observation_probabilities(self, new_state: int) -> Array:
        """The expected distribution over observations in `new_state`."""
        return normalize(self.observation_counts[new_state])

    def transition_probability(self, state: int, action: int, new_state: int) -> float:
        return float(self.transition_probabilities(state, action)[new_state])

    def observation_probability(self, action: int, new_state: int, observation: int) -> float:
        return float(self.observation_probabilities(new_state)[observation])

    def sample_state_index(self, rng_key: PRNGKey, state: int, action: int) -> int:
        return sample_categorical(rng_key, self.transition_probabilities(state, action))

    def sample_observation_index(self, rng_key: PRNGKey, action: int, new_state: int) -> int:
        return sample_categorical(rng_key, self.observation_probabilities(new_state))

    def increment(self, state: int, action: int, new_state: int, observation: int, count: float = 1.0) -> "BAFlatModel":
        """Adds the experience <s, a, s', o> to the counts."""
        return BAFlatModel(
            transition_counts=self.transition_counts.at[state, action, new_state].add(count),
            observation_counts=self.observation_counts.at[new_state, observation].add(count),
        )

    def expected_model(self) -> "BAFlatModel":
        """The normalized counts, i.e. the mean of the Dirichlet posterior."""
        return BAFlatModel(
            transition_counts=normalize(self.transition_counts),
            observation_counts=normalize(self.observation_counts),
        )

    def sample(self, rng_key: PRNGKey) -> "BAFlatModel":
        """Redraws every count vector from its Dirichlet, keeping the mass of each vector."""
        key_trans, key_obs = random.split(rng_key)
        return BAFlatModel(
            transition_counts=resample_counts(key_trans, self.transition_counts),
            observation_counts=resample_counts(key_obs, self.observation_counts),
        )
