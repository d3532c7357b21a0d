""" Immutable value types describing a tumor sample as a mixture of populations: the population
fractions, the per-segment ploidy-state profiles of the variant populations, the priors and the
full sampler state """

from dataclasses import dataclass
from typing import Iterable, NamedTuple, Sequence

import numpy as np

from ploidy_states import PloidyState, PloidyStatePrior, NORMAL_PLOIDY_STATE


_FRACTION_SUM_TOLERANCE = 1e-6


class PopulationFractions(tuple):
    """
    Weights of the populations in the sample. The last entry is the weight of the normal
    (reference) population. Entries lie strictly between 0 and 1 and sum to one.
    """

    def __new__(cls, fractions: Iterable[float]):
        fractions = tuple(float(f) for f in fractions)
        if len(fractions) < 2:
            raise ValueError("PopulationFractions: need at least one variant and one normal population")
        if not all(0.0 < f < 1.0 for f in fractions):
            raise ValueError(f"PopulationFractions: fractions must lie in (0, 1), got {fractions}")
        if abs(sum(fractions) - 1.0) > _FRACTION_SUM_TOLERANCE:
            raise ValueError(f"PopulationFractions: fractions must sum to 1, got {sum(fractions)}")
        return super().__new__(cls, fractions)

    @property
    def num_populations(self):
        return len(self)

    @property
    def normal_fraction(self):
        return self[-1]


class VariantProfile(tuple):
    """Ploidy state of one variant population at every segment."""

    def __new__(cls, ploidy_states: Iterable[PloidyState]):
        try:
            ploidy_states = tuple(PloidyState(*state) for state in ploidy_states)
        except TypeError:
            raise ValueError("VariantProfile: entries must be (m, n) ploidy states") from None
        return super().__new__(cls, ploidy_states)

    @property
    def num_segments(self):
        return len(self)


class VariantProfileCollection(tuple):
    """One VariantProfile per variant population; all profiles cover the same segments."""

    def __new__(cls, variant_profiles: Iterable[Sequence[PloidyState]]):
        variant_profiles = tuple(
            profile if isinstance(profile, VariantProfile) else VariantProfile(profile)
            for profile in variant_profiles
        )
        if not variant_profiles:
            raise ValueError("VariantProfileCollection: need at least one variant profile")
        lengths = {len(profile) for profile in variant_profiles}
        if len(lengths) != 1:
            raise ValueError(f"VariantProfileCollection: profiles have differing numbers of segments {sorted(lengths)}")
        return super().__new__(cls, variant_profiles)

    @property
    def num_variant_populations(self):
        return len(self)

    @property
    def num_segments(self):
        return len(self[0])

    def ploidy_state(self, population_index, segment_index) -> PloidyState:
        return self[population_index][segment_index]


class PopulationMixture:
    """
    Population fractions together with the variant profiles. The normal population sits in
    the last position and carries normal_ploidy_state at every segment.
    """

    def __init__(self, population_fractions, variant_profile_collection, normal_ploidy_state=NORMAL_PLOIDY_STATE):
        if not isinstance(population_fractions, PopulationFractions):
            population_fractions = PopulationFractions(population_fractions)
        if not isinstance(variant_profile_collection, VariantProfileCollection):
            variant_profile_collection = VariantProfileCollection(variant_profile_collection)
        if variant_profile_collection.num_variant_populations != population_fractions.num_populations - 1:
            raise ValueError(
                f"PopulationMixture: {variant_profile_collection.num_variant_populations} variant profiles "
                f"given for {population_fractions.num_populations} populations"
            )
        self._population_fractions = population_fractions
        self._variant_profile_collection = variant_profile_collection
        self._normal_ploidy_state = normal_ploidy_state

    @property
    def population_fractions(self) -> PopulationFractions:
        return self._population_fractions

    @property
    def variant_profile_collection(self) -> VariantProfileCollection:
        return self._variant_profile_collection

    @property
    def normal_ploidy_state(self) -> PloidyState:
        return self._normal_ploidy_state

    @property
    def num_populations(self):
        return self._population_fractions.num_populations

    @property
    def num_segments(self):
        return self._variant_profile_collection.num_segments

    def population_fraction(self, population_index):
        return self._population_fractions[population_index]

    def ploidy_state(self, population_index, segment_index) -> PloidyState:
        if population_index == self.num_populations - 1:
            return self._normal_ploidy_state
        return self._variant_profile_collection.ploidy_state(population_index, segment_index)

    def population_averaged_copy_number(self, segment_index, copy_number_function) -> float:
        """sum over populations p of fraction[p] * copy_number_function(state of p at the segment)"""
        return sum(
            fraction * copy_number_function(self.ploidy_state(population_index, segment_index))
            for population_index, fraction in enumerate(self._population_fractions)
        )

    def ploidy(self, data) -> float:
        """Segment-length-weighted average of the population-averaged total copy number."""
        if data.num_segments != self.num_segments:
            raise ValueError(
                f"PopulationMixture.ploidy: mixture has {self.num_segments} segments, data has {data.num_segments}"
            )
        lengths = np.asarray(data.segment_lengths, dtype=float)
        totals = np.array([
            self.population_averaged_copy_number(segment_index, lambda state: state.total)
            for segment_index in range(self.num_segments)
        ])
        return float(np.sum(lengths * totals) / np.sum(lengths))

    def __eq__(self, other):
        if not isinstance(other, PopulationMixture):
            return False
        return (self._population_fractions == other._population_fractions
                and self._variant_profile_collection == other._variant_profile_collection
                and self._normal_ploidy_state == other._normal_ploidy_state)

    def __hash__(self):
        return hash((self._population_fractions, self._variant_profile_collection, self._normal_ploidy_state))

    def __repr__(self):
        return f"PopulationMixture(fractions={list(self._population_fractions)}, num_segments={self.num_segments})"


class GammaHyperparameters(NamedTuple):
    """Shape (alpha) and rate (beta) of a Gamma prior."""
    alpha: float
    beta: float


@dataclass(frozen=True)
class TumorHeterogeneityPriors:
    """
        concentration_prior: Gamma prior on the population-fraction concentration
        copy_ratio_noise_floor_prior: Gamma prior on the copy-ratio noise floor
        copy_ratio_noise_factor_prior: Gamma prior on (copy-ratio noise factor - 1)
        minor_allele_fraction_noise_factor_prior: Gamma prior on (minor-allele-fraction noise factor - 1)
        ploidy_state_prior: discrete prior over the ploidy state of a variant population at a segment
        normal_ploidy_state: fixed ploidy state of the normal population

    The Gamma priors may be given as (alpha, beta) pairs.
    """

    concentration_prior: GammaHyperparameters
    copy_ratio_noise_floor_prior: GammaHyperparameters
    copy_ratio_noise_factor_prior: GammaHyperparameters
    minor_allele_fraction_noise_factor_prior: GammaHyperparameters
    ploidy_state_prior: PloidyStatePrior
    normal_ploidy_state: PloidyState = NORMAL_PLOIDY_STATE

    def __post_init__(self):
        for name in ("concentration_prior", "copy_ratio_noise_floor_prior", "copy_ratio_noise_factor_prior",
                     "minor_allele_fraction_noise_factor_prior"):
            alpha, beta = getattr(self, name)
            if alpha <= 0 or beta <= 0:
                raise ValueError(f"TumorHeterogeneityPriors: {name} alpha and beta must be > 0, got ({alpha}, {beta})")
            object.__setattr__(self, name, GammaHyperparameters(float(alpha), float(beta)))
        object.__setattr__(self, "normal_ploidy_state", PloidyState(*self.normal_ploidy_state))


class TumorHeterogeneityState:
    """
    One point of the Markov chain. Instances are never modified; the with_* methods return
    a new state sharing the priors.
    """

    def __init__(self, concentration, copy_ratio_noise_floor, copy_ratio_noise_factor,
                 minor_allele_fraction_noise_factor, population_mixture: PopulationMixture,
                 priors: TumorHeterogeneityPriors):
        if not concentration > 0:
            raise ValueError(f"TumorHeterogeneityState: concentration must be > 0, got {concentration}")
        if not copy_ratio_noise_floor >= 0:
            raise ValueError(f"TumorHeterogeneityState: copy-ratio noise floor must be >= 0, got {copy_ratio_noise_floor}")
        if not copy_ratio_noise_factor >= 1:
            raise ValueError(f"TumorHeterogeneityState: copy-ratio noise factor must be >= 1, got {copy_ratio_noise_factor}")
        if not minor_allele_fraction_noise_factor >= 1:
            raise ValueError(
                f"TumorHeterogeneityState: minor-allele-fraction noise factor must be >= 1, "
                f"got {minor_allele_fraction_noise_factor}"
            )
        if population_mixture.normal_ploidy_state != priors.normal_ploidy_state:
            raise ValueError("TumorHeterogeneityState: population mixture and priors disagree on the normal ploidy state")
        self._concentration = float(concentration)
        self._copy_ratio_noise_floor = float(copy_ratio_noise_floor)
        self._copy_ratio_noise_factor = float(copy_ratio_noise_factor)
        self._minor_allele_fraction_noise_factor = float(minor_allele_fraction_noise_factor)
        self._population_mixture = population_mixture
        self._priors = priors

    @property
    def concentration(self):
        return self._concentration

    @property
    def copy_ratio_noise_floor(self):
        return self._copy_ratio_noise_floor

    @property
    def copy_ratio_noise_factor(self):
        return self._copy_ratio_noise_factor

    @property
    def minor_allele_fraction_noise_factor(self):
        return self._minor_allele_fraction_noise_factor

    @property
    def population_mixture(self) -> PopulationMixture:
        return self._population_mixture

    @property
    def priors(self) -> TumorHeterogeneityPriors:
        return self._priors

    def _replace(self, **changes):
        values = {
            "concentration": self._concentration,
            "copy_ratio_noise_floor": self._copy_ratio_noise_floor,
            "copy_ratio_noise_factor": self._copy_ratio_noise_factor,
            "minor_allele_fraction_noise_factor": self._minor_allele_fraction_noise_factor,
            "population_mixture": self._population_mixture,
            "priors": self._priors,
        }
        values.update(changes)
        return TumorHeterogeneityState(**values)

    def with_concentration(self, concentration):
        return self._replace(concentration=concentration)

    def with_copy_ratio_noise_floor(self, copy_ratio_noise_floor):
        return self._replace(copy_ratio_noise_floor=copy_ratio_noise_floor)

    def with_copy_ratio_noise_factor(self, copy_ratio_noise_factor):
        return self._replace(copy_ratio_noise_factor=copy_ratio_noise_factor)

    def with_minor_allele_fraction_noise_factor(self, minor_allele_fraction_noise_factor):
        return self._replace(minor_allele_fraction_noise_factor=minor_allele_fraction_noise_factor)

    def with_population_mixture(self, population_mixture):
        return self._replace(population_mixture=population_mixture)
