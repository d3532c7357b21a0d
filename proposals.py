""" Random-walk proposals for the continuous parameters of the population mixture.

Every step is drawn from a two-component scale mixture: with probability 0.5 a Normal(0, width)
step, otherwise a Normal(0, 10 * width) step, so that most moves are local while the occasional
wide move lets the chain leave a local mode. The generator is always passed in explicitly. """

import logging
from dataclasses import dataclass

import numpy as np


logger = logging.getLogger(__name__)

_WIDE_STEP_SCALE = 10.0


@dataclass(frozen=True)
class ProposalConfig:
    """
    Holds the tuning constants for the random-walk proposals. There are no defaults; the
    caller decides them.

        transformed_population_fraction_proposal_width: width of steps on the stick-breaking coordinates
        ploidy_proposal_width: width of steps on the overall ploidy
        max_num_ploidy_step_iterations: number of draws allowed before a ploidy proposal gives up
    """

    transformed_population_fraction_proposal_width: float
    ploidy_proposal_width: float
    max_num_ploidy_step_iterations: int

    def __post_init__(self):
        if self.transformed_population_fraction_proposal_width <= 0:
            raise ValueError("ProposalConfig: transformed_population_fraction_proposal_width must be > 0")
        if self.ploidy_proposal_width <= 0:
            raise ValueError("ProposalConfig: ploidy_proposal_width must be > 0")
        if self.max_num_ploidy_step_iterations < 1:
            raise ValueError("ProposalConfig: max_num_ploidy_step_iterations must be >= 1")

        object.__setattr__(self, "transformed_population_fraction_proposal_width",
                           float(self.transformed_population_fraction_proposal_width))
        object.__setattr__(self, "ploidy_proposal_width", float(self.ploidy_proposal_width))
        object.__setattr__(self, "max_num_ploidy_step_iterations", int(self.max_num_ploidy_step_iterations))


def scale_mixture_step(rng: np.random.Generator, width: float) -> float:
    scale = width if rng.random() < 0.5 else _WIDE_STEP_SCALE * width
    return float(rng.normal(0.0, scale))


def propose_transformed_population_fraction(rng: np.random.Generator, current: float, width: float) -> float:
    """Unconstrained step on one stick-breaking coordinate."""
    return current + scale_mixture_step(rng, width)


def propose_transformed_population_fractions(rng, current_transformed_population_fractions, config: ProposalConfig):
    return [
        propose_transformed_population_fraction(rng, t, config.transformed_population_fraction_proposal_width)
        for t in current_transformed_population_fractions
    ]


"""
Propose a new ploidy in (0, max_total_copy_number]. Steps that land outside the range are
redrawn; once max_iterations draws have failed the current ploidy is returned unchanged, which
the Metropolis step then treats as a proposal equal to the current state.
"""
def propose_ploidy(rng: np.random.Generator, current: float, width: float, max_total_copy_number: float,
                   max_iterations: int) -> float:
    for _ in range(max_iterations):
        proposed = current + scale_mixture_step(rng, width)
        if 0 < proposed <= max_total_copy_number:
            return proposed
    logger.debug("No ploidy proposal in (0, %s] after %d draws; keeping %s",
                 max_total_copy_number, max_iterations, current)
    return current
