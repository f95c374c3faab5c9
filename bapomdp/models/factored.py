r"""Factored (dynamic Bayesian network) pseudo-count models.

Every next-state feature $s'_i$ is predicted by a node whose parents are a
subset of the previous state features and the action. The inputs of the
transition nodes are $(s_0, \dots, s_{k-1}, a)$, so the action has parent id
$k$. Observation nodes predict every observation feature from a subset of
$(s'_0, \dots, s'_{k-1}, a)$. Since parents always come from the previous
slice, any structure is acyclic.
"""

from typing import Callable, Mapping, NamedTuple, Sequence

from jax import Array, random
from jax import numpy as jnp

from bapomdp.core import PRNGKey, DomainFeatureSize
from bapomdp.utils import DiscreteSpace, normalize, resample_counts, sample_categorical

CountsFn = Callable[[Mapping[int, Array]], Array]


class Structure(NamedTuple):
    """The parent set of every transition and observation node.

    Attributes:
        transition (tuple[tuple[int, ...], ...]): Sorted parent ids of every next-state feature.
        observation (tuple[tuple[int, ...], ...]): Sorted parent ids of every observation feature.
    """
    transition: tuple[tuple[int, ...], ...]
    observation: tuple[tuple[int, ...], ...]

    @classmethod
    def create(
        cls,
        transition: Sequence[Sequence[int]],
        observation: Sequence[Sequence[int]]
    ) -> "Structure":
        return cls(
            transition=tuple(tuple(sorted(set(p))) for p in transition),
            observation=tuple(tuple(sorted(set(p))) for p in observation),
        )

    def with_transition_parents(self, feature: int, parents: Sequence[int]) -> "Structure":
        transition = list(self.transition)
        transition[feature] = tuple(sorted(set(parents)))
        return self._replace(transition=tuple(transition))


class IndexingSteps(NamedTuple):
    """Encodes factored state and observation values to and from flat indices."""
    state: DiscreteSpace
    observation: DiscreteSpace

    @classmethod
    def create(cls, feature_size: DomainFeatureSize) -> "IndexingSteps":
        return cls(
            state=DiscreteSpace.create(feature_size.state),
            observation=DiscreteSpace.create(feature_size.observation),
        )


class DBNNode(NamedTuple):
    """Conditional pseudo-counts of a single feature given its parents.

    Attributes:
        parents (tuple[int, ...]): Ids of the parent inputs.
        parent_space (DiscreteSpace): Encoding of parent value assignments.
        counts (Array): Counts with shape (number of parent assignments, feature cardinality).
    """
    parents: tuple[int, ...]
    parent_space: DiscreteSpace
    counts: Array

    def parent_index(self, inputs: Sequence[int]) -> int:
        return self.parent_space.index([inputs[p] for p in self.parents])

    def probabilities(self, inputs: Sequence[int]) -> Array:
        return normalize(self.counts[self.parent_index(inputs)])

    def probability(self, inputs: Sequence[int], value: int) -> float:
        return float(self.probabilities(inputs)[value])

    def sample_value(self, rng_key: PRNGKey, inputs: Sequence[int]) -> int:
        return sample_categorical(rng_key, self.probabilities(inputs))

    def increment(self, inputs: Sequence[int], value: int, count: float = 1.0) -> "DBNNode":
        return self._replace(counts=self.counts.at[self.parent_index(inputs), value].add(count))

    def sample(self, rng_key: PRNGKey) -> "DBNNode":
        return self._replace(counts=resample_counts(rng_key, self.counts))


def create_node(
    parents: Sequence[int],
    input_dims: Sequence[int],
    dim: int,
    counts_fn: CountsFn
) -> DBNNode:
    r"""Creates a node by evaluating `counts_fn` on every parent assignment.

    Args:
        parents: Sequence[int]
            Ids of the parent inputs.
        input_dims: Sequence[int]
            Cardinality of every input the parents are drawn from.
        dim: int
            Cardinality of the feature of the node.
        counts_fn: CountsFn
            Maps the values of every parent, as columns over all parent
            assignments keyed by parent id, to counts with shape (P, dim).

    Returns:
        DBNNode:
            The node, every row of which has positive mass.
    """
    parents = tuple(sorted(set(parents)))
    assert all(0 <= p < len(input_dims) for p in parents), f"Parents {parents} out of range."

    parent_space = DiscreteSpace.create([input_dims[p] for p in parents])
    values = parent_space.all_values()
    counts = counts_fn({p: values[:, i] for i, p in enumerate(parents)})

    assert counts.shape == (parent_space.size, dim), \
        f"Expected counts of shape {(parent_space.size, dim)}, got {counts.shape}."
    assert bool(jnp.all(jnp.sum(counts, axis=-1) > 0.0)), "Every parent assignment needs positive counts."
    return DBNNode(parents=parents, parent_space=parent_space, counts=counts)


class BABNModel(NamedTuple):
    """A factored BA-POMDP model: one node per state and observation feature."""
    transition_nodes: tuple[DBNNode, ...]
    observation_nodes: tuple[DBNNode, ...]
    steps: IndexingSteps
    feature_size: DomainFeatureSize

    @property
    def structure(self) -> Structure:
        return Structure(
            transition=tuple(node.parents for node in self.transition_nodes),
            observation=tuple(node.parents for node in self.observation_nodes),
        )

    def _inputs(self, state: int, action: int) -> tuple[int, ...]:
        assert 0 <= action < self.feature_size.action, f"Action {action} out of range."
        return self.steps.state.values(state) + (int(action),)

    def transition_probability(self, state: int, action: int, new_state: int) -> float:
        inputs = self._inputs(state, action)
        prob = 1.0
        for node, value in zip(self.transition_nodes, self.steps.state.values(new_state)):
            prob *= node.probability(inputs, value)
        return prob

    def observation_probability(self, action: int, new_state: int, observation: int) -> float:
        inputs = self._inputs(new_state, action)
        prob = 1.0
        for node, value in zip(self.observation_nodes, self.steps.observation.values(observation)):
            prob *= node.probability(inputs, value)
        return prob

    def sample_state_index(self, rng_key: PRNGKey, state: int, action: int) -> int:
        inputs = self._inputs(state, action)
        keys = random.split(rng_key, len(self.transition_nodes))
        return self.steps.state.index(
            [node.sample_value(key, inputs) for key, node in zip(keys, self.transition_nodes)]
        )

    def sample_observation_index(self, rng_key: PRNGKey, action: int, new_state: int) -> int:
        inputs = self._inputs(new_state, action)
        keys = random.split(rng_key, len(self.observation_nodes))
        return self.steps.observation.index(
            [node.sample_value(key, inputs) for key, node in zip(keys, self.observation_nodes)]
        )

    def increment(self, state: int, action: int, new_state: int, observation: int, count: float = 1.0) -> "BABNModel":
        """Adds the experience <s, a, s', o> to the counts of every node."""
        inputs = self._inputs(state, action)
        new_inputs = self._inputs(new_state, action)
        return self._replace(
            transition_nodes=tuple(
                node.increment(inputs, value, count)
                for node, value in zip(self.transition_nodes, self.steps.state.values(new_state))
            ),
            observation_nodes=tuple(
                node.increment(new_inputs, value, count)
                for node, value in zip(self.observation_nodes, self.steps.observation.values(observation))
            ),
        )

    def sample(self, rng_key: PRNGKey) -> "BABNModel":
        """Redraws the conditional table of every node independently."""
        keys = random.split(rng_key, len(self.transition_nodes) + len(self.observation_nodes))
        num_transition = len(self.transition_nodes)
        return self._replace(
            transition_nodes=tuple(
                node.sample(key) for key, node in zip(keys[:num_transition], self.transition_nodes)
            ),
            observation_nodes=tuple(
                node.sample(key) for key, node in zip(keys[num_transition:], self.observation_nodes)
            ),
        )
