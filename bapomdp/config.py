from typing import List, Optional, NamedTuple


class CollisionAvoidance(NamedTuple):
    # Grid settings
    width: int = 7
    height: int = 7
    num_obstacles: int = 1

    # "random" starts the agent anywhere in the right-most column,
    # "centre" starts agent and obstacles in the middle row
    version: str = "random"


class BAConfig(NamedTuple):
    # Prior over the flat table
    noise: float = 0.0
    total_counts: float = 100.0


class FBAConfig(NamedTuple):
    # Prior over the factored model
    noise: float = 0.0
    counts_total: float = 100.0
    edge_noise: float = 0.1

    # "fully-connected", "correct" or "random"
    structure: str = "fully-connected"


class PriorExperiment(NamedTuple):
    # Domain settings
    width: int = 7
    height: int = 7
    num_obstacles: int = 1
    version: str = "random"

    # Experiment settings
    num_seeds: int = 3
    starting_seed: int = 0
    num_episodes: int = 20
    planner: str = "random"

    # Prior settings
    prior: str = "factored"
    noise: float = 0.0
    counts_total: float = 100.0
    edge_noise: float = 0.1
    structure: str = "fully-connected"
    num_hypotheses: int = 16

    # Logger settings
    use_logger: bool = False
    plot: bool = False
    project_name: str = "bapomdp"
    experiment_group: str = "prior"
    experiment_tags: Optional[List[str]] = ["prior", "collision-avoidance"]
    experiment_id: Optional[str] = None
    logger_directory: str = "logs"
