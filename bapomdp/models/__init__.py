"""Pseudo-count models of BA-POMDP dynamics.

The flat model keeps Dirichlet counts over the full transition and
observation tables, the factored model a dynamic Bayesian network of
per-feature conditional counts.
"""

from .flat import BAFlatModel
from .factored import BABNModel, DBNNode, IndexingSteps, Structure, create_node

__all__ = [
    'BAFlatModel',
    'BABNModel',
    'DBNNode',
    'IndexingSteps',
    'Structure',
    'create_node',
]
