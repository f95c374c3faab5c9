import time
import uuid
from typing import Union

import matplotlib.pyplot as plt

from bapomdp.config import BAConfig, FBAConfig, PriorExperiment, CollisionAvoidance
from bapomdp.envs.domains import CollisionAvoidanceEnv, CollisionAvoidanceState
from bapomdp.priors import (
    BAPOMDPPrior,
    FBAPOMDPPrior,
    CollisionAvoidanceTablePrior,
    CollisionAvoidanceFactoredPrior,
)


def get_unique_identifier() -> str:
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    unique_id = str(uuid.uuid4())[:8]
    return f"-{timestamp}-{unique_id}"


def get_domain(config: PriorExperiment) -> CollisionAvoidanceEnv:
    return CollisionAvoidanceEnv.from_config(
        CollisionAvoidance(
            width=config.width,
            height=config.height,
            num_obstacles=config.num_obstacles,
            version=config.version,
        )
    )


def get_prior(config: PriorExperiment, domain: CollisionAvoidanceEnv) -> Union[BAPOMDPPrior, FBAPOMDPPrior]:
    if config.prior == "table":
        return CollisionAvoidanceTablePrior(
            domain, BAConfig(noise=config.noise, total_counts=config.counts_total)
        )
    elif config.prior == "factored":
        return CollisionAvoidanceFactoredPrior(
            domain,
            FBAConfig(
                noise=config.noise,
                counts_total=config.counts_total,
                edge_noise=config.edge_noise,
                structure=config.structure,
            ),
        )
    else:
        raise ValueError(f"Invalid prior {config.prior!r}, expected 'table' or 'factored'.")


def plot_trajectory(domain: CollisionAvoidanceEnv, states: list[CollisionAvoidanceState]):
    fig, axs = plt.subplots(2, 1, figsize=(10, 8))
    fig.suptitle("Simulated episode")

    axs[0].plot([s.x_agent for s in states], [s.y_agent for s in states], "g-o", label="Agent")
    for i in range(domain.num_obstacles):
        axs[0].plot(
            [0] * len(states), [s.obstacles[i] for s in states], "rx", alpha=0.5, label=f"Obstacle {i}"
        )
    axs[0].set_xlim(-0.5, domain.width - 0.5)
    axs[0].set_ylim(-0.5, domain.height - 0.5)
    axs[0].set_xlabel("x")
    axs[0].set_ylabel("y")
    axs[0].legend()
    axs[0].grid(True)

    axs[1].plot([s.y_agent for s in states], label="Agent")
    for i in range(domain.num_obstacles):
        axs[1].plot([s.obstacles[i] for s in states], label=f"Obstacle {i}")
    axs[1].set_xlabel("Time")
    axs[1].set_ylabel("y")
    axs[1].legend()
    axs[1].grid(True)

    plt.tight_layout()
    return fig
