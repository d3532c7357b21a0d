"""
Stick-breaking reparameterization of the population fractions

K population fractions on the simplex are mapped to K-1 break proportions in (0, 1):
break i is the share of the stick left over after the first i populations that goes to
population i. Each break proportion is then mapped to the real line with a logit, offset by
log(1 / (K - i - 1)) so that a fixed-width random walk has a similar effect at every break.
The normal population takes whatever remains of the stick, so fractions built from break
proportions always sum to one.
"""

import math
from typing import List

import numpy as np

from log_posterior import EPSILON
from population_mixture import PopulationFractions


def _logit(p):
    return math.log(p) - math.log1p(-p)


def _sigmoid(x):
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    e = math.exp(x)
    return e / (1.0 + e)


def _offset(break_index, num_populations):
    return math.log(1.0 / (num_populations - break_index - 1))


def _remaining_sticks(population_fractions) -> List[float]:
    """remaining[i] = f_i + ... + f_{K-1}, the stick left before break i"""
    remaining = [0.0] * len(population_fractions)
    suffix_sum = 0.0
    for i in reversed(range(len(population_fractions))):
        suffix_sum += population_fractions[i]
        remaining[i] = suffix_sum
    return remaining


def break_proportions_from_population_fractions(population_fractions) -> List[float]:
    remaining = _remaining_sticks(population_fractions)
    return [population_fractions[i] / remaining[i] for i in range(len(population_fractions) - 1)]


def population_fractions_from_break_proportions(break_proportions) -> PopulationFractions:
    population_fractions = []
    remaining = 1.0
    for break_proportion in break_proportions:
        population_fractions.append(remaining * break_proportion)
        remaining *= 1.0 - break_proportion
    #normal population gets the rest of the stick
    population_fractions.append(remaining)
    return PopulationFractions(population_fractions)


def transformed_from_break_proportions(break_proportions) -> List[float]:
    num_populations = len(break_proportions) + 1
    return [_logit(b) - _offset(i, num_populations) for i, b in enumerate(break_proportions)]


def break_proportions_from_transformed(transformed_population_fractions) -> List[float]:
    """Break proportions are kept in [EPSILON, 1 - EPSILON] so that far-out coordinates still give interior fractions."""
    num_populations = len(transformed_population_fractions) + 1
    return [
        min(max(_sigmoid(t + _offset(i, num_populations)), EPSILON), 1.0 - EPSILON)
        for i, t in enumerate(transformed_population_fractions)
    ]


def transformed_from_population_fractions(population_fractions) -> List[float]:
    """Map K population fractions to the K-1 unconstrained coordinates used by the random walk."""
    return transformed_from_break_proportions(break_proportions_from_population_fractions(population_fractions))


def population_fractions_from_transformed(transformed_population_fractions) -> PopulationFractions:
    """Inverse of transformed_from_population_fractions."""
    return population_fractions_from_break_proportions(break_proportions_from_transformed(transformed_population_fractions))


def calculate_log_jacobian_factor(population_fractions) -> float:
    """
    log |det d(fractions[:-1]) / d(transformed)|, i.e. the correction needed to express the
    fraction-space density in the unconstrained coordinates:
        sum_i log(fraction_i) + log(1 - break_proportion_i)
    with 1 - break_proportion_i = remaining_{i+1} / remaining_i
    """
    remaining = _remaining_sticks(population_fractions)
    return float(np.sum([
        math.log(population_fractions[i]) + math.log(remaining[i + 1]) - math.log(remaining[i])
        for i in range(len(population_fractions) - 1)
    ]))
