from typing import NamedTuple, Sequence

import math

import jax
from jax import Array, random
from jax import numpy as jnp
from distrax import Categorical

from bapomdp.core import PRNGKey


class DiscreteSpace(NamedTuple):
    r"""Mixed-radix encoding of feature tuples into dense indices.

    A tuple of feature values $(v_0, \dots, v_{k-1})$ with cardinalities
    $(c_0, \dots, c_{k-1})$ maps to the index $\sum_i v_i \prod_{j<i} c_j$,
    i.e. the first feature is the least significant digit.

    Attributes:
        dims (tuple[int, ...]): The cardinality of every feature.
    """
    dims: tuple[int, ...]

    @classmethod
    def create(cls, dims: Sequence[int]) -> "DiscreteSpace":
        dims = tuple(int(d) for d in dims)
        if any(d <= 0 for d in dims):
            raise ValueError(f"Feature cardinalities must be positive, got {dims}.")
        return cls(dims=dims)

    @property
    def size(self) -> int:
        return math.prod(self.dims)

    @property
    def steps(self) -> tuple[int, ...]:
        """The stride multiplier of every feature."""
        steps, step = [], 1
        for d in self.dims:
            steps.append(step)
            step *= d
        return tuple(steps)

    def index(self, values: Sequence[int]) -> int:
        """Encode feature values into their dense index.

        Raises:
            ValueError: If the number of values or any value is out of range.
        """
        if len(values) != len(self.dims):
            raise ValueError(f"Expected {len(self.dims)} feature values, got {len(values)}.")

        index = 0
        for value, dim, step in zip(values, self.dims, self.steps):
            if not 0 <= value < dim:
                raise ValueError(f"Feature value {value} outside of [0, {dim}).")
            index += int(value) * step
        return index

    def values(self, index: int) -> tuple[int, ...]:
        """Decode a dense index into its feature values."""
        assert 0 <= index < self.size, f"Index {index} outside of [0, {self.size})."

        values = []
        for dim in self.dims:
            index, value = divmod(int(index), dim)
            values.append(value)
        return tuple(values)

    def all_values(self) -> Array:
        """Every feature tuple of the space, ordered by index, with shape (size, k)."""
        indices = jnp.arange(self.size)
        steps = jnp.array(self.steps, dtype=jnp.int32).reshape(1, -1)
        dims = jnp.array(self.dims, dtype=jnp.int32).reshape(1, -1)
        return (indices[:, None] // steps) % dims


def custom_split(rng_key: PRNGKey, num: int):
    r"""Splits a random number generator key into multiple sub-keys.

    Args:
        rng_key: PRNGKey
            The random number generator key to split
        num: int
            The number of sub-keys to generate

    Returns:
        tuple:
            A tuple containing the next key and an array of sub-keys
    """
    key, *sub_keys = random.split(rng_key, num)
    return key, jnp.array(sub_keys)


def sample_categorical(rng_key: PRNGKey, probs: Array) -> int:
    """Draws a single index from a categorical distribution over `probs`."""
    return int(Categorical(probs=probs).sample(seed=rng_key))


def normalize(counts: Array) -> Array:
    """Normalizes the last axis of a (batch of) pseudo-count vectors."""
    return counts / jnp.sum(counts, axis=-1, keepdims=True)


def sample_dirichlet(rng_key: PRNGKey, counts: Array) -> Array:
    r"""Draws a categorical distribution per row from a Dirichlet over `counts`.

    Entries with zero pseudo-count have no support and stay zero. Rows whose
    gamma draws all underflow fall back to the normalized counts.

    Args:
        rng_key: PRNGKey
            Random number generator key.
        counts: Array
            Non-negative pseudo-counts with shape (..., n), every row with
            positive mass.

    Returns:
        Array:
            Probability vectors with the shape of `counts`.
    """
    support = counts > 0.0
    draws = random.gamma(rng_key, jnp.where(support, counts, 1.0))
    draws = jnp.where(support, draws, 0.0)
    total = jnp.sum(draws, axis=-1, keepdims=True)
    return jnp.where(total > 0.0, draws / jnp.where(total > 0.0, total, 1.0), normalize(counts))


@jax.jit
def resample_counts(rng_key: PRNGKey, counts: Array) -> Array:
    """Redistributes every row of `counts` by a Dirichlet draw, keeping its total mass."""
    return sample_dirichlet(rng_key, counts) * jnp.sum(counts, axis=-1, keepdims=True)
