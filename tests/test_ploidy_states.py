import itertools
import math

import numpy as np
import pytest

from ploidy_states import (
    CartesianProduct,
    NORMAL_PLOIDY_STATE,
    PloidyState,
    PloidyStatePrior,
    build_ploidy_state_sets_map,
    build_total_copy_number_product_states,
    enumerate_ploidy_states,
    logsumexp,
)


class TestPloidyState:

    def test_total(self):
        assert PloidyState(2, 1).total == 3
        assert NORMAL_PLOIDY_STATE == PloidyState(1, 1)

    def test_hashable_and_immutable(self):
        assert len({PloidyState(1, 2), PloidyState(1, 2), PloidyState(2, 1)}) == 2
        with pytest.raises(AttributeError):
            PloidyState(1, 1).m = 3

    @pytest.mark.parametrize("copy_numbers", [(-1, 2), (1, -1), (1, 2.5), (True, 1), ("1", 1)])
    def test_invalid_copy_numbers(self, copy_numbers):
        with pytest.raises(ValueError):
            PloidyState(*copy_numbers)

    def test_accepts_numpy_integers(self):
        state = PloidyState(np.int64(2), np.int64(0))
        assert state == PloidyState(2, 0)
        assert type(state.m) is int

    def test_enumerate(self):
        assert enumerate_ploidy_states(0) == (PloidyState(0, 0),)
        assert enumerate_ploidy_states(2) == (PloidyState(0, 2), PloidyState(1, 1), PloidyState(2, 0))
        with pytest.raises(ValueError):
            enumerate_ploidy_states(-1)

    def test_sets_map(self):
        sets_map = build_ploidy_state_sets_map(3)
        assert sorted(sets_map) == [0, 1, 2, 3]
        for total, states in sets_map.items():
            assert all(state.total == total for state in states)


class TestCartesianProduct:
    """Test the lazily produced product sequence"""

    def test_matches_itertools(self):
        factors = [[0, 1, 2], ["a", "b"], [True, False, None, 7]]
        product = CartesianProduct(factors)
        assert list(product) == list(itertools.product(*factors))
        assert len(product) == 24

    def test_restartable(self):
        product = CartesianProduct([[1, 2], [3, 4]])
        assert list(product) == list(product)

    def test_indexing(self):
        factors = [[0, 1, 2], [10, 20], [5, 6, 7]]
        product = CartesianProduct(factors)
        expected = list(itertools.product(*factors))
        assert [product[i] for i in range(len(product))] == expected
        assert product[-1] == expected[-1]
        with pytest.raises(IndexError):
            product[len(product)]

    def test_empty(self):
        assert list(CartesianProduct([[1, 2], []])) == []
        assert len(CartesianProduct([])) == 0

    def test_large_product_is_not_materialized(self):
        product = CartesianProduct([range(100)] * 6)
        assert len(product) == 100 ** 6
        assert product[123456789] == (0, 1, 23, 45, 67, 89)

    def test_total_copy_number_product_states(self):
        states = build_total_copy_number_product_states(2, 2)
        assert list(states) == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2), (2, 0), (2, 1), (2, 2)]
        with pytest.raises(ValueError):
            build_total_copy_number_product_states(2, 0)


class TestPloidyStatePrior:

    def test_normalized(self):
        prior = PloidyStatePrior({PloidyState(1, 1): 0.0, PloidyState(2, 0): 0.0})
        assert prior.log_probability(PloidyState(1, 1)) == pytest.approx(math.log(0.5))

    def test_penalties(self):
        prior = PloidyStatePrior.from_penalties(3, change_penalty=1.0, complete_deletion_penalty=2.0)
        total = sum(math.exp(prior.log_probability(state)) for state in prior.ploidy_states)
        assert total == pytest.approx(1.0)
        normal = prior.log_probability(NORMAL_PLOIDY_STATE)
        assert prior.log_probability(PloidyState(1, 2)) == pytest.approx(normal - 1.0)
        assert prior.log_probability(PloidyState(0, 0)) == pytest.approx(normal - 4.0)
        assert len(prior.ploidy_states) == 10

    def test_unknown_state(self):
        prior = PloidyStatePrior.from_penalties(2)
        with pytest.raises(ValueError):
            prior.log_probability(PloidyState(3, 3))

    def test_invalid(self):
        with pytest.raises(ValueError):
            PloidyStatePrior({})
        with pytest.raises(ValueError):
            PloidyStatePrior({PloidyState(1, 1): -math.inf})
        with pytest.raises(ValueError):
            PloidyStatePrior.from_penalties(2, change_penalty=-1.0)

    def test_logsumexp(self):
        assert logsumexp([0.0, 0.0]) == pytest.approx(math.log(2.0))
        assert logsumexp([]) == -math.inf
