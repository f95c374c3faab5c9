r"""Priors over the dynamics of the collision avoidance domain.

The observation model and the movement of the agent are considered known;
the behaviour of the obstacles may be noisy. The prior over whether an
obstacle moves is controlled by a single variable, the noise $\nu$. For
$\nu = 0$ the prior matches the true dynamics. Otherwise the probability of
moving up or down is scaled by $1 - \nu$ and the removed mass is added to the
probability of staying put:

$$p'(\text{up}) = (1 - \nu)\, p(\text{up}), \quad
  p'(\text{down}) = (1 - \nu)\, p(\text{down}), \quad
  p'(\text{stay}) = p(\text{stay}) + \nu\, (p(\text{up}) + p(\text{down})).$$

No positive floor is added to the counts: next states the agent or the
obstacles cannot reach keep zero counts, and keep zero probability in every
sampled model. Each row still has positive mass, since an obstacle stays put
with probability at least one half.
"""

from functools import reduce

import jax
from jax import Array, random
from jax import numpy as jnp

from bapomdp.core import PRNGKey
from bapomdp.config import BAConfig, FBAConfig
from bapomdp.envs.domains.collision_avoidance import (
    AGENT_X_FEATURE,
    AGENT_Y_FEATURE,
    FIRST_OBSTACLE_FEATURE,
    CollisionAvoidanceEnv,
    CollisionAvoidanceState,
    obstacle_move_probabilities,
)
from bapomdp.models.flat import BAFlatModel
from bapomdp.models.factored import (
    BABNModel,
    DBNNode,
    IndexingSteps,
    Structure,
    create_node,
)
from bapomdp.priors.core import (
    STRUCTURES,
    BAPOMDPPrior,
    BAPOMDPState,
    FBAPOMDPPrior,
    FBAPOMDPState,
)

# counts of dynamics that are considered known
KNOWN_COUNTS = 10000.0


def noisy_move_probabilities(y: int, height: int, noise: float) -> tuple[float, float, float]:
    """The prior probability of an obstacle at `y` moving (down, staying, up)."""
    down, stay, up = obstacle_move_probabilities(y, height)
    down, stay, up = (1.0 - noise) * down, stay + noise * (down + up), (1.0 - noise) * up
    total = down + stay + up
    return down / total, stay / total, up / total


def noisy_obstacle_transitions(height: int, noise: float) -> Array:
    """Element (y, y') is the prior probability of an obstacle moving from y to y'."""
    transitions = jnp.zeros((height, height))
    for y in range(height):
        for dy, prob in zip((-1, 0, 1), noisy_move_probabilities(y, height, noise)):
            if prob > 0.0:
                transitions = transitions.at[y, y + dy].add(prob)
    return transitions


def _check_prior_parameters(noise: float, counts: float) -> None:
    if not 0.0 <= noise < 1.0:
        raise ValueError(f"Noise must be in [0, 1), got {noise}.")
    if not counts > 0.0:
        raise ValueError(f"Total counts must be positive, got {counts}.")


class CollisionAvoidanceTablePrior(BAPOMDPPrior):
    """A flat Dirichlet prior over the collision avoidance dynamics."""

    def __init__(self, domain: CollisionAvoidanceEnv, config: BAConfig):
        _check_prior_parameters(config.noise, config.total_counts)

        self._width = domain.width
        self._height = domain.height
        self._num_obstacles = domain.num_obstacles
        self._noise = config.noise
        self._total_counts = config.total_counts
        self._domain_size = domain.domain_size

        self._obstacle_transitions = noisy_obstacle_transitions(self._height, self._noise)
        self._prior = BAFlatModel(
            transition_counts=self._transition_counts(domain),
            observation_counts=self._observation_counts(domain),
        )

    @property
    def prior(self) -> BAFlatModel:
        return self._prior

    def obstacle_trans_prob(self, y: int, new_y: int) -> float:
        return float(self._obstacle_transitions[y, new_y])

    def _transition_counts(self, domain: CollisionAvoidanceEnv) -> Array:
        r"""Counts of shape (S, A, S).

        A state index is $x + W y + W H o$ with $o$ the index of the obstacle
        positions, so a next state factors into the deterministic agent cell
        and the obstacle positions.
        """
        num_cells = self._width * self._height
        values = domain.state_space.all_values()
        x, y = values[:, AGENT_X_FEATURE], values[:, AGENT_Y_FEATURE]
        obstacles = jnp.arange(self._domain_size.num_states) // num_cells

        dy = jnp.arange(self._domain_size.num_actions) - 1
        next_x = jnp.maximum(x - 1, 0)[:, None]
        next_y = jnp.clip(y[:, None] + dy[None, :], 0, self._height - 1)
        next_cell = jax.nn.one_hot(next_x + self._width * next_y, num_cells)

        joint = reduce(jnp.kron, [self._obstacle_transitions] * self._num_obstacles)
        next_obstacles = joint[obstacles]

        counts = self._total_counts * next_obstacles[:, None, :, None] * next_cell[:, :, None, :]
        return counts.reshape(self._domain_size.num_states, self._domain_size.num_actions, -1)

    def _observation_counts(self, domain: CollisionAvoidanceEnv) -> Array:
        num_cells = self._width * self._height
        obstacles = jnp.arange(self._domain_size.num_states) // num_cells
        joint = reduce(jnp.kron, [domain.observation_errors] * self._num_obstacles)
        return KNOWN_COUNTS * joint[obstacles]

    def sample_bapomdp_state(
        self,
        rng_key: PRNGKey,
        domain_state: CollisionAvoidanceState,
        stochastic: bool = True
    ) -> BAPOMDPState:
        """Pairs `domain_state` with a model drawn from the prior.

        With `stochastic` every count vector is redrawn from its Dirichlet;
        otherwise the prior counts themselves are returned.
        """
        model = self._prior.sample(rng_key) if stochastic else self._prior
        return BAPOMDPState(domain_state=domain_state, model=model)


class CollisionAvoidanceFactoredPrior(FBAPOMDPPrior):
    """A factored prior over the collision avoidance dynamics.

    The agent features and the observations are modelled by their true
    parents. Which features the obstacles depend on is uncertain: the fully
    connected regime gives them every input, the correct regime only their
    own previous position, and random structures add every other input with
    probability `edge_noise`.
    """

    def __init__(self, domain: CollisionAvoidanceEnv, config: FBAConfig):
        _check_prior_parameters(config.noise, config.counts_total)
        if not 0.0 <= config.edge_noise <= 1.0:
            raise ValueError(f"Edge noise must be in [0, 1], got {config.edge_noise}.")
        if config.structure not in STRUCTURES:
            raise ValueError(f"Unknown structure {config.structure!r}, expected one of {STRUCTURES}.")

        self._width = domain.width
        self._height = domain.height
        self._num_obstacles = domain.num_obstacles
        self._num_state_features = FIRST_OBSTACLE_FEATURE + self._num_obstacles
        self._action_feature = self._num_state_features

        self._noise = config.noise
        self._counts_total = config.counts_total
        self._edge_noise = config.edge_noise
        self.regime = config.structure

        self._feature_size = domain.domain_feature_size
        if self._feature_size.state != (self._width, self._height) + (self._height,) * self._num_obstacles:
            raise ValueError(f"Feature sizes {self._feature_size.state} do not match the grid.")
        self._steps = IndexingSteps.create(self._feature_size)
        self._input_dims = self._feature_size.state + (self._feature_size.action,)

        self._obstacle_counts = self._counts_total * noisy_obstacle_transitions(self._height, self._noise)
        self._observation_counts = KNOWN_COUNTS * domain.observation_errors

        self._fully_connected_model = self.compute_prior_model(self.fully_connected_structure())
        self._correct_model = self.compute_prior_model(self.correct_structure())

    # structures

    def _obstacle_feature(self, obstacle: int) -> int:
        return FIRST_OBSTACLE_FEATURE + obstacle

    def _candidate_parents(self, feature: int) -> list[int]:
        return [p for p in range(len(self._input_dims)) if p != feature]

    def _required_parents(self) -> Structure:
        return Structure.create(
            transition=[(AGENT_X_FEATURE,), (AGENT_Y_FEATURE, self._action_feature)] + [
                (self._obstacle_feature(i),) for i in range(self._num_obstacles)
            ],
            observation=[(self._obstacle_feature(i),) for i in range(self._num_obstacles)],
        )

    def correct_structure(self) -> Structure:
        return self._required_parents()

    def fully_connected_structure(self) -> Structure:
        inputs = tuple(range(len(self._input_dims)))
        return self._required_parents()._replace(transition=(inputs,) * self._num_state_features)

    def sample_structure(self, rng_key: PRNGKey) -> Structure:
        """Adds every candidate edge into an obstacle node with probability `edge_noise`."""
        structure = self.correct_structure()
        keys = random.split(rng_key, self._num_obstacles)
        for i, key in enumerate(keys):
            feature = self._obstacle_feature(i)
            candidates = self._candidate_parents(feature)
            edges = random.bernoulli(key, self._edge_noise, (len(candidates),))
            parents = [feature] + [c for c, edge in zip(candidates, edges) if bool(edge)]
            structure = structure.with_transition_parents(feature, parents)
        return structure

    def mutate(self, rng_key: PRNGKey, structure: Structure) -> Structure:
        """Adds or removes a single edge into one of the obstacle nodes.

        The obstacle is picked uniformly. An edge is added with probability
        `edge_noise` and removed otherwise, unless the node has no edge left
        to add (or to remove). The added or removed parent is picked uniformly
        among the candidates; the node keeps its own previous position as
        parent.
        """
        self._check_structure(structure)
        key_obstacle, key_add, key_edge = random.split(rng_key, 3)

        feature = self._obstacle_feature(int(random.randint(key_obstacle, (), 0, self._num_obstacles)))
        parents = set(structure.transition[feature])
        candidates = self._candidate_parents(feature)
        present = [c for c in candidates if c in parents]
        absent = [c for c in candidates if c not in parents]

        if not absent:
            add = False
        elif not present:
            add = True
        else:
            add = bool(random.bernoulli(key_add, self._edge_noise))

        edges = absent if add else present
        parent = edges[int(random.randint(key_edge, (), 0, len(edges)))]
        parents.symmetric_difference_update({parent})
        return structure.with_transition_parents(feature, parents)

    def _check_structure(self, structure: Structure) -> None:
        required = self._required_parents()
        if len(structure.transition) != len(required.transition) \
                or len(structure.observation) != len(required.observation):
            raise ValueError(
                f"Structure needs {len(required.transition)} transition and "
                f"{len(required.observation)} observation nodes."
            )

        for parents, needed in zip(
            structure.transition + structure.observation,
            required.transition + required.observation,
        ):
            if not set(needed).issubset(parents):
                raise ValueError(f"Parents {parents} lack the required parents {needed}.")
            if not all(0 <= p < len(self._input_dims) for p in parents):
                raise ValueError(f"Parents {parents} are not all from the previous time slice or action.")

    # conditional counts

    def set_agent_y_transition(self, action: Array, y: Array) -> Array:
        """Counts over the next y of the agent, with all mass on the true cell."""
        next_y = jnp.clip(y + action - 1, 0, self._height - 1)
        return self._counts_total * jax.nn.one_hot(next_y, self._height)

    def agent_x_transition(self, x: Array) -> Array:
        """Counts over the next x of the agent, with all mass on the true cell."""
        return self._counts_total * jax.nn.one_hot(jnp.maximum(x - 1, 0), self._width)

    def obstacle_transition(self, y: Array) -> Array:
        """Counts over the next position of an obstacle at `y`."""
        return self._obstacle_counts[y]

    def _transition_node(self, feature: int, parents: tuple[int, ...]) -> DBNNode:
        if feature == AGENT_X_FEATURE:
            counts_fn = lambda v: self.agent_x_transition(v[AGENT_X_FEATURE])
        elif feature == AGENT_Y_FEATURE:
            counts_fn = lambda v: self.set_agent_y_transition(v[self._action_feature], v[AGENT_Y_FEATURE])
        else:
            counts_fn = lambda v: self.obstacle_transition(v[feature])
        return create_node(parents, self._input_dims, self._input_dims[feature], counts_fn)

    def _observation_node(self, obstacle: int, parents: tuple[int, ...]) -> DBNNode:
        feature = self._obstacle_feature(obstacle)
        return create_node(
            parents,
            self._input_dims,
            self._feature_size.observation[obstacle],
            lambda v: self._observation_counts[v[feature]],
        )

    def compute_prior_model(self, structure: Structure) -> BABNModel:
        """The prior counts of every node given the parents declared in `structure`."""
        self._check_structure(structure)
        return BABNModel(
            transition_nodes=tuple(
                self._transition_node(feature, parents)
                for feature, parents in enumerate(structure.transition)
            ),
            observation_nodes=tuple(
                self._observation_node(obstacle, parents)
                for obstacle, parents in enumerate(structure.observation)
            ),
            steps=self._steps,
            feature_size=self._feature_size,
        )

    # hypothesis states

    def sample_fully_connected_state(self, rng_key: PRNGKey, domain_state: CollisionAvoidanceState) -> FBAPOMDPState:
        return FBAPOMDPState(domain_state=domain_state, model=self._fully_connected_model.sample(rng_key))

    def sample_correct_graph_state(self, rng_key: PRNGKey, domain_state: CollisionAvoidanceState) -> FBAPOMDPState:
        return FBAPOMDPState(domain_state=domain_state, model=self._correct_model.sample(rng_key))

    def sample_fbapomdp_state(self, rng_key: PRNGKey, domain_state: CollisionAvoidanceState) -> FBAPOMDPState:
        key_structure, key_model = random.split(rng_key)
        model = self.compute_prior_model(self.sample_structure(key_structure))
        return FBAPOMDPState(domain_state=domain_state, model=model.sample(key_model))
