""" Unnormalized log posterior of a TumorHeterogeneityState given the segment evidence.

log p(state | data) = Gamma priors on the concentration and the three noise parameters
                    + symmetric Dirichlet prior on the population fractions
                    + ploidy-state prior summed over variant populations and segments
                    + segment likelihoods of the population-averaged copy ratio and minor allele fraction

Logs of quantities that can reach zero, and divisions by such quantities, are regularized with
EPSILON. """

import math
from math import lgamma

from population_mixture import TumorHeterogeneityState


EPSILON = 1e-10


def log_gamma_prior(x, alpha, beta):
    """Gamma(alpha, rate=beta) log-density at x"""
    return alpha * math.log(beta + EPSILON) + (alpha - 1.0) * math.log(x + EPSILON) - beta * x - lgamma(alpha)


def log_shifted_gamma_prior(x, alpha, beta):
    """Gamma log-density of x - 1, for the noise factors which are bounded below by one"""
    return log_gamma_prior(x - 1.0, alpha, beta)


"""
Symmetric Dirichlet log density with concentration c over K populations:
log p(f | c) = lgamma(c * K) - K * lgamma(c) + sum((c - 1) * log(f_i))
"""
def log_population_fractions_prior(population_fractions, concentration):
    num_populations = len(population_fractions)
    log_sum = sum((concentration - 1.0) * math.log(f + EPSILON) for f in population_fractions)
    return lgamma(concentration * num_populations) - num_populations * lgamma(concentration) + log_sum


def log_variant_profiles_prior(variant_profile_collection, ploidy_state_prior):
    total = 0.0
    for variant_profile in variant_profile_collection:
        for ploidy_state in variant_profile:
            total += ploidy_state_prior.log_probability(ploidy_state)
    return total


def calculate_minor_allele_fraction(m, n):
    return min(m, n) / (m + n + EPSILON)


def _validate_dimensions(state: TumorHeterogeneityState, data):
    for population_index, variant_profile in enumerate(state.population_mixture.variant_profile_collection):
        if len(variant_profile) != data.num_segments:
            raise ValueError(
                f"calculate_log_posterior: variant profile {population_index} has {len(variant_profile)} segments, "
                f"data has {data.num_segments}"
            )


def segment_copy_ratio_and_minor_allele_fraction(population_mixture, segment_index, ploidy):
    """Copy ratio and minor allele fraction implied by the mixture at one segment"""
    total_copy_number = population_mixture.population_averaged_copy_number(segment_index, lambda s: s.total)
    m_allele_copy_number = population_mixture.population_averaged_copy_number(segment_index, lambda s: s.m)
    n_allele_copy_number = population_mixture.population_averaged_copy_number(segment_index, lambda s: s.n)
    copy_ratio = total_copy_number / (ploidy + EPSILON)
    minor_allele_fraction = calculate_minor_allele_fraction(m_allele_copy_number, n_allele_copy_number)
    return copy_ratio, minor_allele_fraction


def calculate_log_posterior(state: TumorHeterogeneityState, data) -> float:
    _validate_dimensions(state, data)
    priors = state.priors
    population_mixture = state.population_mixture

    log_prior_concentration = log_gamma_prior(state.concentration, *priors.concentration_prior)
    log_prior_copy_ratio_noise_floor = log_gamma_prior(state.copy_ratio_noise_floor,
                                                       *priors.copy_ratio_noise_floor_prior)
    log_prior_copy_ratio_noise_factor = log_shifted_gamma_prior(state.copy_ratio_noise_factor,
                                                                *priors.copy_ratio_noise_factor_prior)
    log_prior_minor_allele_fraction_noise_factor = log_shifted_gamma_prior(
        state.minor_allele_fraction_noise_factor, *priors.minor_allele_fraction_noise_factor_prior)

    log_prior_population_fractions = log_population_fractions_prior(population_mixture.population_fractions,
                                                                    state.concentration)
    log_prior_variant_profiles = log_variant_profiles_prior(population_mixture.variant_profile_collection,
                                                            priors.ploidy_state_prior)

    #copy-ratio / minor-allele-fraction likelihood
    log_likelihood_segments = 0.0
    ploidy = population_mixture.ploidy(data)
    for segment_index in range(data.num_segments):
        copy_ratio, minor_allele_fraction = segment_copy_ratio_and_minor_allele_fraction(
            population_mixture, segment_index, ploidy)
        log_likelihood_segments += data.log_density(segment_index, copy_ratio, minor_allele_fraction,
                                                     state.copy_ratio_noise_floor, state.copy_ratio_noise_factor,
                                                     state.minor_allele_fraction_noise_factor)

    return (log_prior_concentration + log_prior_copy_ratio_noise_floor + log_prior_copy_ratio_noise_factor
            + log_prior_minor_allele_fraction_noise_factor + log_prior_population_fractions
            + log_prior_variant_profiles + log_likelihood_segments)
