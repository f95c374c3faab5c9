from typing import NamedTuple

from bapomdp.core import PRNGKey, State
from bapomdp.models.flat import BAFlatModel
from bapomdp.models.factored import BABNModel, Structure

STRUCTURES = ("fully-connected", "correct", "random")


class BAPOMDPState(NamedTuple):
    """A domain state paired with a hypothesis over the flat dynamics.

    Attributes:
        domain_state (State): The (believed) state of the environment.
        model (BAFlatModel): The sampled counts over the transition and observation tables.
    """
    domain_state: State
    model: BAFlatModel


class FBAPOMDPState(NamedTuple):
    """A domain state paired with a hypothesis over the factored dynamics.

    Attributes:
        domain_state (State): The (believed) state of the environment.
        model (BABNModel): The sampled dynamic Bayesian network.
    """
    domain_state: State
    model: BABNModel


class BAPOMDPPrior:
    """Produces hypothesis states over the flat model from a domain state."""

    def sample_bapomdp_state(self, rng_key: PRNGKey, domain_state: State, stochastic: bool = True) -> BAPOMDPState:
        raise NotImplementedError


class FBAPOMDPPrior:
    """Produces hypothesis states over factored models from a domain state.

    Subclasses set `regime` to one of `STRUCTURES`, which selects the
    regime used by `sample`.
    """

    regime: str = "fully-connected"

    def sample(self, rng_key: PRNGKey, domain_state: State) -> FBAPOMDPState:
        if self.regime == "fully-connected":
            return self.sample_fully_connected_state(rng_key, domain_state)
        elif self.regime == "correct":
            return self.sample_correct_graph_state(rng_key, domain_state)
        elif self.regime == "random":
            return self.sample_fbapomdp_state(rng_key, domain_state)
        else:
            raise ValueError(f"Unknown structure {self.regime!r}, expected one of {STRUCTURES}.")

    def sample_fully_connected_state(self, rng_key: PRNGKey, domain_state: State) -> FBAPOMDPState:
        raise NotImplementedError

    def sample_correct_graph_state(self, rng_key: PRNGKey, domain_state: State) -> FBAPOMDPState:
        raise NotImplementedError

    def sample_fbapomdp_state(self, rng_key: PRNGKey, domain_state: State) -> FBAPOMDPState:
        raise NotImplementedError

    def compute_prior_model(self, structure: Structure) -> BABNModel:
        raise NotImplementedError

    def mutate(self, rng_key: PRNGKey, structure: Structure) -> Structure:
        raise NotImplementedError
