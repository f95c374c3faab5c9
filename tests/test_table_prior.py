import pytest

from jax import random, numpy as jnp

from bapomdp.config import BAConfig
from bapomdp.envs.domains import CollisionAvoidanceEnv, CollisionAvoidanceAction
from bapomdp.priors import CollisionAvoidanceTablePrior, BAPOMDPState
from bapomdp.priors.collision_avoidance import noisy_move_probabilities


def get_true_transitions(env: CollisionAvoidanceEnv):
    num_states = env.domain_size.num_states
    return jnp.array([
        [
            [
                env.compute_transition_probability(env.state(s), env.action(a), env.state(sn))
                for sn in range(num_states)
            ]
            for a in range(3)
        ]
        for s in range(num_states)
    ])


@pytest.fixture(scope="module")
def env():
    return CollisionAvoidanceEnv(3, 3, 1)


@pytest.mark.parametrize("num_obstacles", [1, 2])
def test_counts_are_normalizable(num_obstacles):
    env = CollisionAvoidanceEnv(3, 3, num_obstacles)
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.2, total_counts=50.0)).prior
    assert prior.domain_size == env.domain_size

    num_states, num_actions, num_observations = env.domain_size
    assert prior.transition_counts.shape == (num_states, num_actions, num_states)
    assert prior.observation_counts.shape == (num_states, num_observations)

    assert jnp.all(prior.transition_counts >= 0.0)
    assert jnp.allclose(jnp.sum(prior.transition_counts, axis=-1), 50.0, rtol=1e-5)
    assert jnp.all(jnp.sum(prior.observation_counts, axis=-1) > 0.0)

    expected = prior.expected_model()
    assert jnp.allclose(jnp.sum(expected.transition_counts, axis=-1), 1.0, atol=1e-5)
    assert jnp.allclose(jnp.sum(expected.observation_counts, axis=-1), 1.0, atol=1e-5)


@pytest.mark.parametrize("num_obstacles", [1, 2])
def test_noiseless_prior_matches_true_dynamics(num_obstacles):
    env = CollisionAvoidanceEnv(3, 3, num_obstacles)
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.0, total_counts=10.0)).prior
    assert jnp.allclose(prior.expected_model().transition_counts, get_true_transitions(env), atol=1e-5)

    for s in range(env.domain_size.num_states):
        for o in range(env.domain_size.num_observations):
            expected = env.compute_observation_probability(
                env.observation(o), CollisionAvoidanceAction.STAY, env.state(s)
            )
            assert prior.observation_probability(1, s, o) == pytest.approx(expected, abs=1e-5)


def test_agent_transitions_are_certain(env):
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.5, total_counts=10.0)).prior
    state = env.get_state(2, 0, (1,))
    probs = prior.transition_probabilities(state.index, CollisionAvoidanceAction.MOVE_DOWN)

    for new_state in range(env.domain_size.num_states):
        if probs[new_state] > 0.0:
            assert (env.state(new_state).x_agent, env.state(new_state).y_agent) == (1, 0)


def test_noise_monotonicity(env):
    previous = None
    for noise in (0.0, 0.3, 0.6, 0.9):
        prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=noise, total_counts=10.0))
        probs = (prior.obstacle_trans_prob(1, 0), prior.obstacle_trans_prob(1, 1), prior.obstacle_trans_prob(1, 2))
        assert sum(probs) == pytest.approx(1.0)
        if previous is not None:
            assert probs[0] < previous[0]
            assert probs[1] > previous[1]
            assert probs[2] < previous[2]
        previous = probs


@pytest.mark.parametrize("y, expected", [(0, (0.0, 0.8, 0.2)), (1, (0.2, 0.6, 0.2)), (2, (0.2, 0.8, 0.0))])
def test_noisy_move_probabilities(y, expected):
    assert noisy_move_probabilities(y, 3, 0.2) == pytest.approx(expected)


@pytest.mark.parametrize(
    "noise, total_counts",
    [(1.0, 10.0), (-0.1, 10.0), (0.1, 0.0), (0.1, -5.0)],
)
def test_invalid_configuration_raises(env, noise, total_counts):
    with pytest.raises(ValueError):
        CollisionAvoidanceTablePrior(env, BAConfig(noise=noise, total_counts=total_counts))


@pytest.mark.parametrize("seed", [0, 123])
def test_sampled_states_are_independent_draws(env, seed):
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.1, total_counts=10.0))
    domain_state = env.sample_start_state(random.PRNGKey(seed))

    key1, key2 = random.split(random.PRNGKey(seed))
    state1 = prior.sample_bapomdp_state(key1, domain_state)
    state2 = prior.sample_bapomdp_state(key2, domain_state)
    again = prior.sample_bapomdp_state(key1, domain_state)

    assert isinstance(state1, BAPOMDPState)
    assert state1.domain_state is domain_state
    assert not jnp.allclose(state1.model.transition_counts, state2.model.transition_counts)
    assert jnp.allclose(state1.model.transition_counts, again.model.transition_counts)

    # the draw keeps the mass of every count vector and adds no support
    counts = prior.prior.transition_counts
    assert jnp.allclose(jnp.sum(state1.model.transition_counts, axis=-1), jnp.sum(counts, axis=-1), rtol=1e-4)
    assert jnp.all(jnp.where(counts == 0.0, state1.model.transition_counts == 0.0, True))


def test_deterministic_sample_returns_prior(env):
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.1, total_counts=10.0))
    state = prior.sample_bapomdp_state(random.PRNGKey(0), env.state(0), stochastic=False)
    assert state.model is prior.prior


def test_increment_updates_counts(env):
    model = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.1, total_counts=10.0)).prior
    updated = model.increment(4, 1, 3, 2)
    assert float(updated.transition_counts[4, 1, 3]) == pytest.approx(float(model.transition_counts[4, 1, 3]) + 1.0)
    assert float(updated.observation_counts[3, 2]) == pytest.approx(float(model.observation_counts[3, 2]) + 1.0)
    assert float(jnp.sum(updated.transition_counts)) == pytest.approx(float(jnp.sum(model.transition_counts)) + 1.0, rel=1e-5)


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_sampled_next_states_are_reachable(env, seed):
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.1, total_counts=10.0)).prior
    state = env.get_state(2, 2, (2,))
    key_state, key_obs = random.split(random.PRNGKey(seed))

    new_state = env.state(prior.sample_state_index(key_state, state.index, CollisionAvoidanceAction.MOVE_UP))
    assert (new_state.x_agent, new_state.y_agent) == (1, 2)
    assert new_state.obstacles[0] in (1, 2)
    assert 0 <= prior.sample_observation_index(key_obs, CollisionAvoidanceAction.MOVE_UP, new_state.index) < env.domain_size.num_observations


def test_unreachable_obstacle_moves_have_no_counts(env):
    prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.3, total_counts=10.0)).prior
    state = env.get_state(2, 1, (0,))
    counts = prior.transition_counts[state.index, CollisionAvoidanceAction.STAY.index]

    assert float(counts[env.get_state(1, 1, (2,)).index]) == 0.0
    assert float(counts[env.get_state(1, 1, (0,)).index]) >= 5.0
    assert float(counts[env.get_state(1, 1, (1,)).index]) > 0.0
