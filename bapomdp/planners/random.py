from jax import random

from bapomdp.core import PRNGKey, Action
from bapomdp.envs.core import POMDPEnv
from bapomdp.planners.core import Belief


class RandomPlanner:
    """Picks a uniformly random legal action in a state sampled from the belief."""

    def select_action(self, rng_key: PRNGKey, env: POMDPEnv, belief: Belief) -> Action:
        assert len(belief) > 0, "Cannot plan with an empty belief."
        key_particle, key_action = random.split(rng_key)
        particle = belief[int(random.randint(key_particle, (), 0, len(belief)))]
        return env.generate_random_action(key_action, particle.domain_state)
