import dataclasses

import numpy as np
import pytest

from proposals import (
    ProposalConfig,
    propose_ploidy,
    propose_transformed_population_fraction,
    propose_transformed_population_fractions,
    scale_mixture_step,
)


class TestProposalConfig:
    """Test validation of the proposal tuning constants"""

    def test_valid_config(self):
        config = ProposalConfig(0.1, 0.05, 10)
        assert config.transformed_population_fraction_proposal_width == 0.1
        assert config.ploidy_proposal_width == 0.05
        assert config.max_num_ploidy_step_iterations == 10

    @pytest.mark.parametrize("args", [(0.0, 0.05, 10), (0.1, -1.0, 10), (0.1, 0.05, 0)])
    def test_invalid_config(self, args):
        with pytest.raises(ValueError):
            ProposalConfig(*args)


class TestScaleMixtureStep:
    """Test the two-component step distribution"""

    def test_mixture_has_narrow_and_wide_steps(self):
        rng = np.random.default_rng(0)
        steps = np.array([scale_mixture_step(rng, 1.0) for _ in range(20000)])
        assert np.mean(steps) == pytest.approx(0.0, abs=0.2)
        # variance of the mixture is 0.5 * 1 + 0.5 * 100
        assert np.var(steps) == pytest.approx(50.5, rel=0.1)
        assert np.mean(np.abs(steps) > 5.0) > 0.2


class TestTransformedPopulationFractionProposal:
    """Test the unconstrained random walk"""

    def test_reproducible_with_seed(self):
        a = propose_transformed_population_fraction(np.random.default_rng(42), 0.5, 0.1)
        b = propose_transformed_population_fraction(np.random.default_rng(42), 0.5, 0.1)
        assert a == b

    def test_vector_proposal(self):
        config = ProposalConfig(0.1, 0.05, 10)
        current = [0.0, -1.0, 2.0]
        proposed = propose_transformed_population_fractions(np.random.default_rng(1), current, config)
        assert len(proposed) == 3
        assert proposed != current
        again = propose_transformed_population_fractions(np.random.default_rng(1), current, config)
        assert proposed == again


class TestPloidyProposal:
    """Test the bounded ploidy random walk"""

    def test_stays_in_range(self):
        rng = np.random.default_rng(7)
        for current in (0.1, 1.0, 2.0, 4.9):
            for _ in range(200):
                proposed = propose_ploidy(rng, current, 0.5, 5, 100)
                assert 0 < proposed <= 5

    def test_returns_current_when_range_unreachable(self):
        # every step from 100 with width 0.01 stays far above the bound
        rng = np.random.default_rng(7)
        assert propose_ploidy(rng, 100.0, 0.01, 1, 25) == 100.0

    def test_gives_up_after_max_iterations(self):
        class CountingGenerator:
            def __init__(self):
                self.num_normal_draws = 0

            def random(self):
                return 0.0

            def normal(self, loc, scale):
                self.num_normal_draws += 1
                return 10.0

        rng = CountingGenerator()
        assert propose_ploidy(rng, 2.0, 0.1, 5, 13) == 2.0
        assert rng.num_normal_draws == 13

    def test_reproducible_with_seed(self):
        a = propose_ploidy(np.random.default_rng(5), 2.0, 0.3, 6, 10)
        b = propose_ploidy(np.random.default_rng(5), 2.0, 0.3, 6, 10)
        assert a == b


class TestProposalConfigIsFrozen:

    def test_cannot_reassign(self):
        config = ProposalConfig(0.1, 0.05, 10)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.ploidy_proposal_width = 1.0

    def test_values_are_coerced(self):
        config = ProposalConfig(1, 2, 3.0)
        assert isinstance(config.transformed_population_fraction_proposal_width, float)
        assert isinstance(config.max_num_ploidy_step_iterations, int)
