"""
Gibbs-style redraw of the variant profiles given proposed population fractions

For every segment the ploidy states of the variant populations are drawn in two stages:
    1. a combination of total copy numbers, weighted by the copy-ratio likelihood alone
    2. an allele-specific split of that combination, weighted by the joint copy-ratio and
       minor-allele-fraction likelihood
Splitting the draw this way avoids enumerating every allele-specific combination across all
populations. Segments are independent of each other given the fractions and the ploidy.
"""

import logging
from typing import List, Sequence

import numpy as np

from log_posterior import EPSILON
from ploidy_states import CartesianProduct, PloidyState
from population_mixture import VariantProfileCollection
from proposals import ProposalConfig, propose_ploidy


logger = logging.getLogger(__name__)

def normalize_from_log_to_linear_space(log_probabilities) -> np.ndarray:
    """Turn unnormalized log-probabilities into probabilities summing to one (shifted by the max to avoid underflow)."""
    log_probabilities = np.asarray(log_probabilities, dtype=float)
    if log_probabilities.size == 0:
        raise ValueError("normalize_from_log_to_linear_space: no log-probabilities given")
    if np.any(np.isnan(log_probabilities)):
        raise ValueError("normalize_from_log_to_linear_space: log-probabilities contain NaN")
    max_log_probability = np.max(log_probabilities)
    if not np.isfinite(max_log_probability):
        raise ValueError(f"normalize_from_log_to_linear_space: cannot normalize with maximum {max_log_probability}")
    probabilities = np.exp(log_probabilities - max_log_probability)
    return probabilities / np.sum(probabilities)


def random_select(probabilities, rng: np.random.Generator) -> int:
    """Index drawn from a categorical distribution using a single uniform draw against the cumulative weights."""
    cumulative = np.cumsum(probabilities)
    u = rng.random() * cumulative[-1]
    index = int(np.searchsorted(cumulative, u, side="right"))
    return min(index, len(cumulative) - 1)


def calculate_total_copy_number(population_fractions, total_copy_number_product_state: Sequence[int],
                                normal_ploidy_state: PloidyState) -> float:
    num_populations = len(population_fractions)
    return sum(
        total_copy_number_product_state[i] * population_fractions[i] for i in range(num_populations - 1)
    ) + normal_ploidy_state.total * population_fractions[num_populations - 1]


def calculate_product_minor_allele_fraction(population_fractions, ploidy_state_product_state: Sequence[PloidyState],
                                            normal_ploidy_state: PloidyState) -> float:
    num_populations = len(population_fractions)
    normal_fraction = population_fractions[num_populations - 1]
    m_allele_copy_number = sum(
        ploidy_state_product_state[i].m * population_fractions[i] for i in range(num_populations - 1)
    ) + normal_ploidy_state.m * normal_fraction
    n_allele_copy_number = sum(
        ploidy_state_product_state[i].n * population_fractions[i] for i in range(num_populations - 1)
    ) + normal_ploidy_state.n * normal_fraction
    return min(m_allele_copy_number, n_allele_copy_number) / (m_allele_copy_number + n_allele_copy_number + EPSILON)


def _propose_segment_ploidy_states(rng, segment_index, current_state, data, population_fractions, ploidy,
                                   total_copy_number_product_states, ploidy_state_sets_map):
    normal_ploidy_state = current_state.priors.normal_ploidy_state
    noise_floor = current_state.copy_ratio_noise_floor
    noise_factor = current_state.copy_ratio_noise_factor

    #stage 1: total copy numbers, copy-ratio likelihood only
    log_probabilities_copy_ratio = [
        data.copy_ratio_log_density(
            segment_index,
            calculate_total_copy_number(population_fractions, total_state, normal_ploidy_state)
            / (ploidy + EPSILON),
            noise_floor, noise_factor)
        for total_state in total_copy_number_product_states
    ]
    probabilities_copy_ratio = normalize_from_log_to_linear_space(log_probabilities_copy_ratio)
    total_copy_number_product_state = total_copy_number_product_states[random_select(probabilities_copy_ratio, rng)]
    total_copy_ratio = calculate_total_copy_number(population_fractions, total_copy_number_product_state,
                                                   normal_ploidy_state) / (ploidy + EPSILON)

    #stage 2: allele-specific split with the copy ratio held fixed
    try:
        ploidy_state_product_states = CartesianProduct(
            [ploidy_state_sets_map[total] for total in total_copy_number_product_state])
    except KeyError as e:
        raise ValueError(f"propose_variant_profile_collection: no ploidy states for total copy number {e.args[0]}") from None
    log_probabilities = [
        data.log_density(
            segment_index, total_copy_ratio,
            calculate_product_minor_allele_fraction(population_fractions, product_state, normal_ploidy_state),
            noise_floor, noise_factor, current_state.minor_allele_fraction_noise_factor)
        for product_state in ploidy_state_product_states
    ]
    probabilities = normalize_from_log_to_linear_space(log_probabilities)
    return ploidy_state_product_states[random_select(probabilities, rng)]


def propose_variant_profile_collection(rng: np.random.Generator, current_state, data, proposed_population_fractions,
                                       max_total_copy_number: int, total_copy_number_product_states,
                                       ploidy_state_sets_map, config: ProposalConfig) -> VariantProfileCollection:
    """
    Draw new variant profiles for every variant population at every segment.

    rng: generator consumed for the ploidy step and the two categorical draws per segment
    current_state: state supplying the noise parameters, the normal ploidy state and the current ploidy
    data: segment evidence with copy_ratio_log_density and log_density
    proposed_population_fractions: fractions (normal last) used to weight the candidate states
    max_total_copy_number: upper bound on the proposed ploidy
    total_copy_number_product_states: candidate combinations of total copy numbers, one entry per variant population
    ploidy_state_sets_map: total copy number -> ploidy states with that total
    config: proposal widths and the ploidy-step iteration cap
    """
    num_populations = current_state.population_mixture.num_populations
    num_segments = data.num_segments
    if len(proposed_population_fractions) != num_populations:
        raise ValueError(
            f"propose_variant_profile_collection: {len(proposed_population_fractions)} proposed fractions "
            f"for {num_populations} populations"
        )
    if len(total_copy_number_product_states) == 0:
        raise ValueError("propose_variant_profile_collection: no total-copy-number states to choose from")
    if len(total_copy_number_product_states[0]) != num_populations - 1:
        raise ValueError(
            f"propose_variant_profile_collection: total-copy-number states must have one entry per variant "
            f"population, got {total_copy_number_product_states[0]}"
        )

    current_ploidy = current_state.population_mixture.ploidy(data)
    logger.debug("Current population fractions: %s", list(current_state.population_mixture.population_fractions))
    logger.debug("Current ploidy: %s", current_ploidy)

    proposed_ploidy = propose_ploidy(rng, current_ploidy, config.ploidy_proposal_width, max_total_copy_number,
                                     config.max_num_ploidy_step_iterations)
    logger.debug("Proposed initial ploidy: %s", proposed_ploidy)

    #profiles[population][segment]
    profiles: List[List[PloidyState]] = [[] for _ in range(num_populations - 1)]
    for segment_index in range(num_segments):
        product_state = _propose_segment_ploidy_states(
            rng, segment_index, current_state, data, proposed_population_fractions, proposed_ploidy,
            total_copy_number_product_states, ploidy_state_sets_map)
        for population_index in range(num_populations - 1):
            profiles[population_index].append(product_state[population_index])

    return VariantProfileCollection(profiles)
