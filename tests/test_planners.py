import pytest

from jax import random

from bapomdp.config import BAConfig, FBAConfig
from bapomdp.envs.domains import CollisionAvoidanceEnv
from bapomdp.planners import RandomPlanner, factory, make_ba_planner, register_planner
from bapomdp.priors import CollisionAvoidanceTablePrior, CollisionAvoidanceFactoredPrior


@pytest.fixture(scope="module")
def env():
    return CollisionAvoidanceEnv(3, 3, 1)


def test_make_random_planner():
    assert isinstance(make_ba_planner("random"), RandomPlanner)


@pytest.mark.parametrize("name", ["ts", "po-uct"])
def test_unregistered_planners_are_not_implemented(name):
    with pytest.raises(NotImplementedError):
        make_ba_planner(name)


def test_incorrect_planner_raises():
    with pytest.raises(ValueError):
        make_ba_planner("greedy")


def test_register_planner(monkeypatch):
    monkeypatch.setattr(factory, "_planners", dict(factory._planners))
    register_planner("always-random", lambda config: RandomPlanner())
    assert isinstance(make_ba_planner("always-random"), RandomPlanner)


def test_registered_planners_do_not_leak():
    with pytest.raises(ValueError):
        make_ba_planner("always-random")


@pytest.mark.parametrize("seed", [0, 1, 123])
def test_random_planner_with_hypothesis_states(env, seed):
    table_prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.1))
    factored_prior = CollisionAvoidanceFactoredPrior(env, FBAConfig(noise=0.1, structure="correct"))
    state = env.sample_start_state(random.PRNGKey(seed))

    keys = random.split(random.PRNGKey(seed), 4)
    belief = [
        table_prior.sample_bapomdp_state(keys[0], state),
        factored_prior.sample(keys[1], state),
    ]
    planner = make_ba_planner("random")
    action = planner.select_action(keys[2], env, belief)
    assert action in env.legal_actions(state)


def test_random_planner_needs_belief(env):
    with pytest.raises(AssertionError):
        RandomPlanner().select_action(random.PRNGKey(0), env, [])


@pytest.mark.parametrize("seed", [0, 123])
def test_hypothesis_models_share_sampling_interface(env, seed):
    table_prior = CollisionAvoidanceTablePrior(env, BAConfig(noise=0.1))
    factored_prior = CollisionAvoidanceFactoredPrior(env, FBAConfig(noise=0.1, structure="correct"))
    state = env.get_state(2, 1, (1,))
    action = env.action(2)

    keys = random.split(random.PRNGKey(seed), 3)
    for hypothesis in (table_prior.sample_bapomdp_state(keys[0], state), factored_prior.sample(keys[1], state)):
        model = hypothesis.model
        new_state = model.sample_state_index(keys[2], state.index, action.index)
        observation = model.sample_observation_index(keys[2], action.index, new_state)
        assert env.state(new_state).y_agent == 2
        assert model.observation_probability(action.index, new_state, observation) > 0.0
