""" Discrete allele-specific copy-number states and the tables of candidate states used when
redrawing variant profiles """

import math
import numbers
from collections import namedtuple
from typing import Dict, List, Sequence, Tuple


class PloidyState(namedtuple("PloidyState", ["m", "n"])):
    """
        Allele-specific copy number at a segment:
            m: copy number of the first allele
            n: copy number of the second allele
        both non-negative integers
    """
    __slots__ = ()

    def __new__(cls, m, n):
        for copy_number in (m, n):
            if isinstance(copy_number, bool) or not isinstance(copy_number, numbers.Integral) or copy_number < 0:
                raise ValueError(f"PloidyState: copy numbers must be non-negative integers, got ({m!r}, {n!r})")
        return super().__new__(cls, int(m), int(n))

    @property
    def total(self) -> int:
        return self.m + self.n


#diploid reference state used for the non-malignant population
NORMAL_PLOIDY_STATE = PloidyState(1, 1)


# Stable logsumexp over a list of log vals
def logsumexp(values: List[float]) -> float:
    if not values:
        return -math.inf

    m = max(values)

    if m == -math.inf:
        return -math.inf

    s = sum(math.exp(v - m) for v in values)
    return m + math.log(s)


"""
    Return all allele-specific states with the given total copy number, ordered by m.
    Both (m, n) and (n, m) are kept since the two alleles are distinguishable in a profile.
"""
def enumerate_ploidy_states(total_copy_number: int) -> Tuple[PloidyState, ...]:
    if total_copy_number < 0:
        raise ValueError("enumerate_ploidy_states: total copy number must be >= 0")
    return tuple(PloidyState(m, total_copy_number - m) for m in range(total_copy_number + 1))


def build_ploidy_state_sets_map(max_total_copy_number: int) -> Dict[int, Tuple[PloidyState, ...]]:
    """Map each total copy number in [0, max_total_copy_number] to the states realizing it."""
    return {total: enumerate_ploidy_states(total) for total in range(max_total_copy_number + 1)}


class CartesianProduct:
    """
    Finite, restartable sequence over the Cartesian product of a list of factors.

    The product is never materialized: iteration walks an odometer of factor indices and
    positional access decodes a mixed-radix index, so memory stays proportional to the
    factors. The first factor varies slowest, matching itertools.product.
    """

    def __init__(self, factors: Sequence[Sequence]):
        self.factors = tuple(tuple(factor) for factor in factors)

    def __len__(self):
        if not self.factors:
            return 0
        size = 1
        for factor in self.factors:
            size *= len(factor)
        return size

    def __iter__(self):
        if len(self) == 0:
            return
        indices = [0] * len(self.factors)
        while True:
            yield tuple(factor[i] for factor, i in zip(self.factors, indices))
            #advance the odometer from the last factor
            position = len(indices) - 1
            while position >= 0:
                indices[position] += 1
                if indices[position] < len(self.factors[position]):
                    break
                indices[position] = 0
                position -= 1
            if position < 0:
                return

    def __getitem__(self, index):
        size = len(self)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError(f"CartesianProduct index {index} out of range for size {size}")
        combination = []
        for factor in reversed(self.factors):
            index, remainder = divmod(index, len(factor))
            combination.append(factor[remainder])
        return tuple(reversed(combination))


def build_total_copy_number_product_states(max_total_copy_number: int, num_variant_populations: int) -> CartesianProduct:
    """Every combination of total copy numbers in [0, max_total_copy_number] across the variant populations."""
    if num_variant_populations < 1:
        raise ValueError("build_total_copy_number_product_states: need at least one variant population")
    totals = range(max_total_copy_number + 1)
    return CartesianProduct([totals] * num_variant_populations)


class PloidyStatePrior:
    """
    Discrete prior over ploidy states.

    Built from unnormalized log-probabilities, which are normalized on construction so that
    the probabilities of all listed states sum to one.
    """

    def __init__(self, unnormalized_log_probabilities: Dict[PloidyState, float]):
        if not unnormalized_log_probabilities:
            raise ValueError("PloidyStatePrior: at least one ploidy state is required")
        log_norm = logsumexp(list(unnormalized_log_probabilities.values()))
        if not math.isfinite(log_norm):
            raise ValueError("PloidyStatePrior: log-probabilities must not all be -inf")
        self._log_probabilities = {
            PloidyState(*state): log_p - log_norm for state, log_p in unnormalized_log_probabilities.items()
        }

    @classmethod
    def from_penalties(cls, max_total_copy_number, normal_ploidy_state=NORMAL_PLOIDY_STATE,
                       change_penalty=1.0, complete_deletion_penalty=0.0):
        """
        Penalize each allele-specific copy-number change away from the normal state by
        change_penalty, and complete deletions (total 0) by an extra complete_deletion_penalty.
        """
        if change_penalty < 0 or complete_deletion_penalty < 0:
            raise ValueError("PloidyStatePrior.from_penalties: penalties must be >= 0")
        unnormalized = {}
        for states in build_ploidy_state_sets_map(max_total_copy_number).values():
            for state in states:
                num_changes = abs(state.m - normal_ploidy_state.m) + abs(state.n - normal_ploidy_state.n)
                log_p = -change_penalty * num_changes
                if state.total == 0:
                    log_p -= complete_deletion_penalty
                unnormalized[state] = log_p
        return cls(unnormalized)

    @property
    def ploidy_states(self):
        return tuple(self._log_probabilities)

    def log_probability(self, ploidy_state: PloidyState) -> float:
        try:
            return self._log_probabilities[ploidy_state]
        except KeyError:
            raise ValueError(f"PloidyStatePrior: no prior probability for ploidy state {ploidy_state}") from None
