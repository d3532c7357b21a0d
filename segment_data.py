"""
Per-segment copy-ratio and minor-allele-fraction evidence

Each segment is summarized by a point estimate and a standard deviation for its copy ratio
and for its minor allele fraction. The densities used by the sampler are Normal densities of
those observations around the values implied by a population mixture, with the spread
inflated by the noise parameters:

- copy ratio:              sd = sqrt((noise_factor * copy_ratio_sd)^2 + noise_floor^2)
- minor allele fraction:   sd = maf_noise_factor * minor_allele_fraction_sd

Segments without allele-fraction evidence (NaN) only contribute the copy-ratio term.
"""

import math

import numpy as np
import pandas as pd


SEGMENT_COLUMNS = ["length", "copy_ratio", "copy_ratio_sd", "minor_allele_fraction", "minor_allele_fraction_sd"]

_LOG_SQRT_2PI = 0.5 * math.log(2.0 * math.pi)


def normal_log_density(x: float, mean: float, sd: float) -> float:
    z = (x - mean) / sd
    return -0.5 * z * z - math.log(sd) - _LOG_SQRT_2PI


class TumorHeterogeneityData:
    """
        lengths: number of bases covered by each segment; used to weight segments when computing ploidy
        copy_ratios: observed copy ratio of each segment
        copy_ratio_sds: standard deviation of each observed copy ratio
        minor_allele_fractions: observed minor allele fraction of each segment (NaN when absent)
        minor_allele_fraction_sds: standard deviation of each observed minor allele fraction
    """

    def __init__(self, lengths, copy_ratios, copy_ratio_sds, minor_allele_fractions, minor_allele_fraction_sds):
        self.lengths = np.asarray(lengths, dtype=float)
        self.copy_ratios = np.asarray(copy_ratios, dtype=float)
        self.copy_ratio_sds = np.asarray(copy_ratio_sds, dtype=float)
        self.minor_allele_fractions = np.asarray(minor_allele_fractions, dtype=float)
        self.minor_allele_fraction_sds = np.asarray(minor_allele_fraction_sds, dtype=float)

        columns = [self.lengths, self.copy_ratios, self.copy_ratio_sds,
                   self.minor_allele_fractions, self.minor_allele_fraction_sds]
        if len({column.shape for column in columns}) != 1 or self.lengths.ndim != 1:
            raise ValueError("TumorHeterogeneityData: all per-segment arrays must be one-dimensional and of equal length")
        if len(self.lengths) == 0:
            raise ValueError("TumorHeterogeneityData: at least one segment is required")
        if np.any(self.lengths <= 0):
            raise ValueError("TumorHeterogeneityData: segment lengths must be > 0")
        if np.any(self.copy_ratio_sds <= 0):
            raise ValueError("TumorHeterogeneityData: copy-ratio standard deviations must be > 0")
        has_maf = ~np.isnan(self.minor_allele_fractions)
        if np.any(self.minor_allele_fraction_sds[has_maf] <= 0):
            raise ValueError("TumorHeterogeneityData: minor-allele-fraction standard deviations must be > 0")

    """
    Build from a table with one row per segment and the columns in SEGMENT_COLUMNS
    """
    @classmethod
    def from_frame(cls, df: pd.DataFrame):
        missing = [column for column in SEGMENT_COLUMNS if column not in df.columns]
        if missing:
            raise ValueError(f"TumorHeterogeneityData.from_frame: missing columns {missing}")
        return cls(
            lengths=df["length"].to_numpy(),
            copy_ratios=df["copy_ratio"].to_numpy(),
            copy_ratio_sds=df["copy_ratio_sd"].to_numpy(),
            minor_allele_fractions=df["minor_allele_fraction"].to_numpy(),
            minor_allele_fraction_sds=df["minor_allele_fraction_sd"].to_numpy(),
        )

    @property
    def num_segments(self) -> int:
        return len(self.lengths)

    @property
    def segment_lengths(self):
        return self.lengths

    @property
    def total_length(self) -> float:
        return float(np.sum(self.lengths))

    def copy_ratio_log_density(self, segment_index, copy_ratio, copy_ratio_noise_floor, copy_ratio_noise_factor):
        """log p(observed copy ratio | copy_ratio, noise floor, noise factor) at one segment"""
        sd = math.hypot(copy_ratio_noise_factor * self.copy_ratio_sds[segment_index], copy_ratio_noise_floor)
        return normal_log_density(self.copy_ratios[segment_index], copy_ratio, sd)

    def log_density(self, segment_index, copy_ratio, minor_allele_fraction, copy_ratio_noise_floor,
                    copy_ratio_noise_factor, minor_allele_fraction_noise_factor):
        """joint log-density of the copy-ratio and minor-allele-fraction observations at one segment"""
        log_density = self.copy_ratio_log_density(segment_index, copy_ratio, copy_ratio_noise_floor,
                                                  copy_ratio_noise_factor)
        observed_maf = self.minor_allele_fractions[segment_index]
        if math.isnan(observed_maf):
            return log_density
        sd = minor_allele_fraction_noise_factor * self.minor_allele_fraction_sds[segment_index]
        return log_density + normal_log_density(observed_maf, minor_allele_fraction, sd)
