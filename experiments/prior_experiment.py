#!/usr/bin/env python3
"""
Multi-seed experiment runner for the collision avoidance priors.
Every episode samples a belief of hypothesis states from the prior, acts with
the configured planner, and scores the hypotheses on the real transitions.
"""

import math

import matplotlib.pyplot as plt
import tyro
from tqdm import tqdm

from jax import random

from bapomdp.config import PriorExperiment
from bapomdp.envs.domains.collision_avoidance import COLLIDE_PENALTY
from bapomdp.planners import make_ba_planner
from bapomdp.priors import BAPOMDPPrior
from bapomdp.utils import custom_split

from wandb_logger import WandbLogger
from common import get_domain, get_prior, get_unique_identifier, plot_trajectory


def sample_belief(key, prior, state, num_hypotheses):
    key, sub_keys = custom_split(key, num_hypotheses + 1)
    if isinstance(prior, BAPOMDPPrior):
        return [prior.sample_bapomdp_state(k, state) for k in sub_keys]
    return [prior.sample(k, state) for k in sub_keys]


def log_likelihood(hypothesis, state, action, new_state, observation) -> float:
    model = hypothesis.model
    prob = model.transition_probability(state.index, action.index, new_state.index) \
        * model.observation_probability(action.index, new_state.index, observation.index)
    return math.log(prob) if prob > 0.0 else -math.inf


def run_single_seed(config: PriorExperiment, seed: int) -> None:
    """Run a single seed experiment."""

    domain = get_domain(config)
    prior = get_prior(config, domain)
    planner = make_ba_planner(config.planner, config)

    logger = None
    if config.use_logger:
        logger = WandbLogger(
            project_name=config.project_name,
            experiment_name=f"{config.experiment_group}-seed-{seed}",
            experiment_group=config.experiment_group,
            experiment_tags=config.experiment_tags,
            experiment_config=config._asdict(),
            logger_directory=config.logger_directory
        )

    key = random.PRNGKey(seed)
    for episode in range(config.num_episodes):
        key, start_key, belief_key = random.split(key, 3)
        state = domain.sample_start_state(start_key)
        belief = sample_belief(belief_key, prior, state, config.num_hypotheses)

        states, total_reward, terminal = [state], 0.0, False
        scores = [0.0] * len(belief)
        while not terminal:
            key, action_key, step_key = random.split(key, 3)
            action = planner.select_action(action_key, domain, belief)
            new_state, observation, reward, terminal = domain.step(step_key, state, action)

            scores = [
                score + log_likelihood(h, state, action, new_state, observation)
                for score, h in zip(scores, belief)
            ]
            total_reward += reward

            belief = [
                h._replace(
                    domain_state=new_state,
                    model=h.model.increment(state.index, action.index, new_state.index, observation.index),
                )
                for h in belief
            ]
            state = new_state
            states.append(state)

        best_score = max(scores)
        collided = total_reward <= -COLLIDE_PENALTY
        if logger:
            logger.log_episode(
                episode,
                {"return": total_reward, "best_log_likelihood": best_score, "collision": int(collided)},
                hypothesis_scores=[s for s in scores if math.isfinite(s)],
            )

        print(
            f"Seed: {seed:3d} | "
            f"Episode: {episode:4d} | "
            f"Return: {total_reward:9.1f} | "
            f"Collision: {collided!s:5} | "
            f"Best log likelihood: {best_score:9.3f}"
        )

        if config.plot and episode == config.num_episodes - 1:
            figure = plot_trajectory(domain, states)
            if logger:
                logger.log_figure(episode, "trajectory", figure)
            else:
                plt.show()

    if logger:
        logger.finish()

    return None


def main(config: PriorExperiment) -> None:
    if config.experiment_id:
        identifier = config.experiment_id
    else:
        identifier = get_unique_identifier()

    experiment_group = config.experiment_group + identifier
    config = config._replace(experiment_group=experiment_group)

    for seed in tqdm(
        range(config.starting_seed, config.starting_seed + config.num_seeds),
        desc="Running seeds",
    ):
        run_single_seed(config, seed)

    print(f"Experiments completed.")


if __name__ == "__main__":
    config = tyro.cli(PriorExperiment)
    main(config)
