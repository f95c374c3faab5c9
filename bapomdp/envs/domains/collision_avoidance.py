"""The collision avoidance domain.

The agent starts in the right-most column of a width x height grid and moves
one column to the left every step, either diagonally down, straight, or
diagonally up, at a cost of 1, 0 and 1 respectively. Obstacles live in the
left-most column and move up with probability 0.25, down with 0.25 and stay
put with 0.5; at the top row these become 0, 0.25 and 0.75, at the bottom row
0.25, 0 and 0.75. Reaching the left-most column ends the episode, with a
penalty of 1000 when an obstacle occupies the agent's row. The agent knows
its own position but observes every obstacle with Gaussian noise N(0, 1),
rounded to the nearest cell and clamped to the grid.
"""

from enum import IntEnum
from typing import NamedTuple, Sequence, Union

from jax import Array, random, numpy as jnp
from distrax import Normal

from bapomdp.core import PRNGKey, DomainSize, DomainFeatureSize
from bapomdp.config import CollisionAvoidance as CollisionAvoidanceConfig
from bapomdp.envs.core import POMDPEnv, StepResult
from bapomdp.utils import DiscreteSpace, sample_categorical

NUM_ACTIONS = 3
MOVE_PENALTY = 1.0
COLLIDE_PENALTY = 1000.0
OBSTACLE_MOVE_PROB = 0.25
OBSERVATION_STDDEV = 1.0

AGENT_X_FEATURE = 0
AGENT_Y_FEATURE = 1
FIRST_OBSTACLE_FEATURE = 2


class Version(IntEnum):
    INIT_RANDOM_POSITION = 0
    INITIALIZE_CENTRE = 1


VERSIONS = {
    "random": Version.INIT_RANDOM_POSITION,
    "centre": Version.INITIALIZE_CENTRE,
}


class CollisionAvoidanceAction(IntEnum):
    MOVE_DOWN = 0
    STAY = 1
    MOVE_UP = 2

    @property
    def index(self) -> int:
        return int(self)

    @property
    def dy(self) -> int:
        return int(self) - 1

    @property
    def cost(self) -> float:
        return 0.0 if self is CollisionAvoidanceAction.STAY else MOVE_PENALTY


class CollisionAvoidanceState(NamedTuple):
    x_agent: int
    y_agent: int
    obstacles: tuple[int, ...]
    index: int

    def __str__(self) -> str:
        obstacles = ",".join(str(y) for y in self.obstacles)
        return f"(index:{self.index} ({self.x_agent},{self.y_agent}), {{{obstacles}}})"


class CollisionAvoidanceObservation(NamedTuple):
    obstacles: tuple[int, ...]
    index: int

    def __str__(self) -> str:
        return "{" + ",".join(str(y) for y in self.obstacles) + "}"


def obstacle_move_probabilities(y: int, height: int) -> tuple[float, float, float]:
    """Returns the probability of an obstacle at `y` moving (down, staying, up)."""
    p_down = 0.0 if y == 0 else OBSTACLE_MOVE_PROB
    p_up = 0.0 if y == height - 1 else OBSTACLE_MOVE_PROB
    return p_down, 1.0 - p_down - p_up, p_up


def observation_error_matrix(height: int, stddev: float = OBSERVATION_STDDEV) -> Array:
    r"""Discretized Gaussian observation noise, clamped to the grid.

    Element $(y, o)$ is the probability of observing an obstacle at $y$ in
    cell $o$. Noise that falls below the grid is observed in cell 0, noise
    above it in the top cell, so every row sums to one.
    """
    noise = Normal(loc=0.0, scale=stddev)
    cells = jnp.arange(height)
    distance = cells[None, :] - cells[:, None]
    upper = jnp.where(cells[None, :] == height - 1, 1.0, noise.cdf(distance + 0.5))
    lower = jnp.where(cells[None, :] == 0, 0.0, noise.cdf(distance - 0.5))
    return upper - lower


class CollisionAvoidanceEnv(POMDPEnv):

    def __init__(
        self,
        width: int,
        height: int,
        num_obstacles: int = 1,
        version: Version = Version.INIT_RANDOM_POSITION
    ):
        if width < 1 or height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {width}x{height}.")
        if num_obstacles < 1:
            raise ValueError(f"Need at least one obstacle, got {num_obstacles}.")

        self.width = width
        self.height = height
        self.num_obstacles = num_obstacles
        self.version = Version(version)

        self.state_space = DiscreteSpace.create((width, height) + (height,) * num_obstacles)
        self.observation_space = DiscreteSpace.create((height,) * num_obstacles)
        self.domain_size = DomainSize(
            num_states=self.state_space.size,
            num_actions=NUM_ACTIONS,
            num_observations=self.observation_space.size,
        )
        self.domain_feature_size = DomainFeatureSize(
            state=self.state_space.dims,
            action=NUM_ACTIONS,
            observation=self.observation_space.dims,
        )

        self._states = tuple(
            CollisionAvoidanceState(v[0], v[1], tuple(v[2:]), i)
            for i, v in enumerate(map(self.state_space.values, range(self.state_space.size)))
        )
        self._observations = tuple(
            CollisionAvoidanceObservation(self.observation_space.values(i), i)
            for i in range(self.observation_space.size)
        )

        # element (y, y') is the probability of an obstacle moving from y to y'
        transitions = jnp.zeros((height, height))
        for y in range(height):
            for dy, prob in zip((-1, 0, 1), obstacle_move_probabilities(y, height)):
                if prob > 0.0:
                    transitions = transitions.at[y, y + dy].add(prob)
        self.obstacle_transitions = transitions
        self.observation_errors = observation_error_matrix(height)

    @classmethod
    def from_config(cls, config: CollisionAvoidanceConfig) -> "CollisionAvoidanceEnv":
        if config.version not in VERSIONS:
            raise ValueError(f"Unknown domain version {config.version!r}, expected one of {list(VERSIONS)}.")
        return cls(config.width, config.height, config.num_obstacles, VERSIONS[config.version])

    # pools

    def state(self, index: int) -> CollisionAvoidanceState:
        assert 0 <= index < len(self._states), f"State index {index} out of range."
        return self._states[index]

    def get_state(self, x: int, y: int, obstacles: Sequence[int]) -> CollisionAvoidanceState:
        assert 0 <= x < self.width and 0 <= y < self.height, f"Agent ({x},{y}) outside of grid."
        assert len(obstacles) == self.num_obstacles and all(0 <= o < self.height for o in obstacles), \
            f"Obstacles {obstacles} outside of grid."
        return self._states[self.state_space.index((x, y, *obstacles))]

    def action(self, index: int) -> CollisionAvoidanceAction:
        assert 0 <= index < NUM_ACTIONS, f"Action index {index} out of range."
        return CollisionAvoidanceAction(index)

    def get_action(self, move: Union[str, CollisionAvoidanceAction]) -> CollisionAvoidanceAction:
        if isinstance(move, str):
            return CollisionAvoidanceAction[move]
        return CollisionAvoidanceAction(move)

    def observation(self, index: int) -> CollisionAvoidanceObservation:
        assert 0 <= index < len(self._observations), f"Observation index {index} out of range."
        return self._observations[index]

    def get_observation(self, obstacles: Sequence[int]) -> CollisionAvoidanceObservation:
        assert len(obstacles) == self.num_obstacles and all(0 <= o < self.height for o in obstacles), \
            f"Observation {obstacles} outside of grid."
        return self._observations[self.observation_space.index(tuple(obstacles))]

    # dynamics

    def keep_in_grid(self, y: int) -> int:
        """Clamps `y` to the rows of the grid."""
        return min(max(y, 0), self.height - 1)

    def obstacle_transition_probabilities(self, y: int) -> Array:
        """The distribution over the next position of an obstacle at `y`."""
        return self.obstacle_transitions[y]

    def observation_error_probabilities(self, y: int) -> Array:
        """The distribution over the observed position of an obstacle at `y`."""
        return self.observation_errors[y]

    def move_obstacle(self, rng_key: PRNGKey, y: int) -> int:
        """Samples the next position of an obstacle at `y`."""
        return sample_categorical(rng_key, self.obstacle_transitions[y])

    def move_agent(self, state: CollisionAvoidanceState, action: CollisionAvoidanceAction) -> tuple[int, int]:
        """The deterministic next position of the agent; the left-most column is absorbing."""
        return max(state.x_agent - 1, 0), self.keep_in_grid(state.y_agent + action.dy)

    def sample_start_state(self, rng_key: PRNGKey) -> CollisionAvoidanceState:
        if self.version == Version.INITIALIZE_CENTRE:
            centre = self.height // 2
            return self.get_state(self.width - 1, centre, (centre,) * self.num_obstacles)

        key_agent, key_obstacles = random.split(rng_key)
        y = int(random.randint(key_agent, (), 0, self.height))
        obstacles = random.randint(key_obstacles, (self.num_obstacles,), 0, self.height)
        return self.get_state(self.width - 1, y, tuple(int(o) for o in obstacles))

    def sample_observation(self, rng_key: PRNGKey, state: CollisionAvoidanceState) -> CollisionAvoidanceObservation:
        noise = Normal(loc=0.0, scale=OBSERVATION_STDDEV).sample(
            seed=rng_key, sample_shape=(self.num_obstacles,)
        )
        observed = jnp.floor(jnp.array(state.obstacles) + noise + 0.5).astype(jnp.int32)
        return self.get_observation(tuple(self.keep_in_grid(int(o)) for o in observed))

    def step(
        self,
        rng_key: PRNGKey,
        state: CollisionAvoidanceState,
        action: CollisionAvoidanceAction
    ) -> StepResult:
        self._assert_legal(state)
        action = self.action(int(action))

        key_obstacles, key_observation = random.split(rng_key)
        x, y = self.move_agent(state, action)
        obstacle_keys = random.split(key_obstacles, self.num_obstacles)
        obstacles = tuple(
            self.move_obstacle(key, o) for key, o in zip(obstacle_keys, state.obstacles)
        )

        new_state = self.get_state(x, y, obstacles)
        return StepResult(
            state=new_state,
            observation=self.sample_observation(key_observation, new_state),
            reward=self.reward(action, new_state),
            terminal=new_state.x_agent == 0,
        )

    def reward(self, action: CollisionAvoidanceAction, new_state: CollisionAvoidanceState) -> float:
        reward = -CollisionAvoidanceAction(action).cost
        if new_state.x_agent == 0 and new_state.y_agent in new_state.obstacles:
            reward -= COLLIDE_PENALTY
        return reward

    def compute_observation_probability(
        self,
        observation: CollisionAvoidanceObservation,
        action: CollisionAvoidanceAction,
        new_state: CollisionAvoidanceState
    ) -> float:
        self._assert_legal(new_state)
        prob = 1.0
        for y, o in zip(new_state.obstacles, observation.obstacles):
            prob *= float(self.observation_errors[y, o])
        return prob

    def compute_transition_probability(
        self,
        state: CollisionAvoidanceState,
        action: CollisionAvoidanceAction,
        new_state: CollisionAvoidanceState
    ) -> float:
        if self.move_agent(state, CollisionAvoidanceAction(action)) != (new_state.x_agent, new_state.y_agent):
            return 0.0
        prob = 1.0
        for y, new_y in zip(state.obstacles, new_state.obstacles):
            prob *= float(self.obstacle_transitions[y, new_y])
        return prob

    def generate_random_action(self, rng_key: PRNGKey, state: CollisionAvoidanceState) -> CollisionAvoidanceAction:
        return CollisionAvoidanceAction(int(random.randint(rng_key, (), 0, NUM_ACTIONS)))

    def legal_actions(self, state: CollisionAvoidanceState) -> list[CollisionAvoidanceAction]:
        return list(CollisionAvoidanceAction)

    def _assert_legal(self, state: CollisionAvoidanceState) -> None:
        assert 0 <= state.index < len(self._states) and self._states[state.index] == state, \
            f"State {state} is not part of this domain."
