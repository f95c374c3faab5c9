from typing import Dict, Any, Optional, List, Sequence

import wandb


class WandbLogger:
    """Weights & Biases run for a single seed of a prior experiment."""

    def __init__(
        self,
        project_name: str,
        experiment_name: str,
        experiment_group: Optional[str] = None,
        experiment_tags: Optional[List[str]] = None,
        experiment_config: Optional[Dict[str, Any]] = None,
        logger_directory: str = "logs"
    ):
        """
        Args:
            project_name: Name of the Weights & Biases project
            experiment_name: Name of the run, one per seed
            experiment_group: Group collecting all seeds of one experiment
            experiment_tags: Optional list of tags for the run
            experiment_config: Domain, prior and planner settings of the run
            logger_directory: Directory to store logs
        """
        self.wandb_run = wandb.init(
            project=project_name,
            name=experiment_name,
            group=experiment_group,
            tags=experiment_tags,
            config=experiment_config or {},
            dir=logger_directory,
            settings=wandb.Settings(start_method="thread"),
        )
        wandb.define_metric("episode")
        wandb.define_metric("*", step_metric="episode")

    def log_episode(
        self,
        episode: int,
        metrics: Dict[str, Any],
        hypothesis_scores: Optional[Sequence[float]] = None,
    ):
        """Log the summary of an episode, and the spread of the
        log likelihoods over the hypotheses of the belief if given."""
        record = {"episode": episode, **metrics}
        if hypothesis_scores is not None:
            record["hypothesis_scores"] = wandb.Histogram(list(hypothesis_scores))
        self.wandb_run.log(record)

    def log_figure(self, episode: int, name: str, figure):
        self.wandb_run.log({"episode": episode, name: wandb.Image(figure)})

    def finish(self):
        self.wandb_run.finish()
