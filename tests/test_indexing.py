import itertools

import pytest

from jax import numpy as jnp

from bapomdp.utils import DiscreteSpace


@pytest.mark.parametrize("dims", [(3,), (3, 3, 3), (2, 5, 3), (4, 4, 4, 4), ()])
def test_index_bijection(dims):
    space = DiscreteSpace.create(dims)
    assert space.size == len(list(itertools.product(*[range(d) for d in dims])))

    seen = set()
    for values in itertools.product(*[range(d) for d in dims]):
        index = space.index(values)
        assert 0 <= index < space.size
        assert space.values(index) == values
        seen.add(index)
    assert len(seen) == space.size


@pytest.mark.parametrize("dims", [(3, 3, 3), (2, 5, 3)])
def test_all_values_ordered_by_index(dims):
    space = DiscreteSpace.create(dims)
    all_values = space.all_values()

    assert all_values.shape == (space.size, len(dims))
    for index in range(space.size):
        assert tuple(int(v) for v in all_values[index]) == space.values(index)


def test_first_feature_least_significant():
    space = DiscreteSpace.create((2, 5, 3))
    assert space.steps == (1, 2, 10)
    assert space.index((1, 0, 0)) == 1
    assert space.index((0, 1, 0)) == 2
    assert space.index((1, 4, 2)) == 1 + 2 * 4 + 10 * 2


def test_out_of_range_values_raise():
    space = DiscreteSpace.create((3, 3))
    with pytest.raises(ValueError):
        space.index((3, 0))
    with pytest.raises(ValueError):
        space.index((0, -1))
    with pytest.raises(ValueError):
        space.index((0,))


def test_out_of_range_index_fails():
    space = DiscreteSpace.create((3, 3))
    with pytest.raises(AssertionError):
        space.values(9)
    with pytest.raises(AssertionError):
        space.values(-1)


@pytest.mark.parametrize("dims", [(0,), (3, -1)])
def test_non_positive_cardinality_raises(dims):
    with pytest.raises(ValueError):
        DiscreteSpace.create(dims)


def test_all_values_are_integers():
    space = DiscreteSpace.create((2, 2))
    assert jnp.issubdtype(space.all_values().dtype, jnp.integer)
