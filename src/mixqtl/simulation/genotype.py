"""Phased genotype matrices for simulation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import (
    ConfigurationError,
    validate_allele_frequencies,
    validate_genotype_shapes,
    validate_range,
)

logger = get_logger(__name__)

# Dosage substituted for a missing haplotype call (population average)
MISSING_DOSAGE = 0.5


@dataclass(frozen=True, eq=False)
class Genotype:
    """Haplotype dosage matrices ``h1`` and ``h2``, each individuals x variants."""

    h1: np.ndarray
    h2: np.ndarray

    def __post_init__(self) -> None:
        h1 = np.asarray(self.h1, dtype=float)
        h2 = np.asarray(self.h2, dtype=float)
        validate_genotype_shapes(h1, h2)
        object.__setattr__(self, "h1", h1)
        object.__setattr__(self, "h2", h2)

    @property
    def n_individuals(self) -> int:
        return self.h1.shape[0]

    @property
    def n_variants(self) -> int:
        return self.h1.shape[1]

    def imputed(self) -> Genotype:
        """Copy with missing calls replaced by :data:`MISSING_DOSAGE`."""
        return Genotype(impute_missing_dosage(self.h1), impute_missing_dosage(self.h2))

    def dosage(self) -> np.ndarray:
        """Diploid dosage ``h1 + h2`` after imputation."""
        return impute_missing_dosage(self.h1) + impute_missing_dosage(self.h2)


def impute_missing_dosage(haplotype: np.ndarray) -> np.ndarray:
    """Replace missing (NaN) calls with the population-average dosage 0.5."""
    haplotype = np.array(haplotype, dtype=float)
    haplotype[np.isnan(haplotype)] = MISSING_DOSAGE
    return haplotype


def allele_frequencies(genotype: Genotype) -> np.ndarray:
    """Per-variant allele frequency, the column mean of ``(h1 + h2) / 2``."""
    return genotype.dosage().mean(axis=0) / 2


def create_genotype(
    n_individuals: int,
    n_variants: int,
    maf: Sequence[float] | None = None,
    maf_range: Sequence[float] = (0.05, 0.5),
    missing_rate: float = 0.0,
    rng: np.random.Generator | int | None = None,
) -> Genotype:
    """
    Simulate phased haplotypes under Hardy-Weinberg equilibrium.

    Each haplotype call is an independent Bernoulli draw with the variant's
    allele frequency. A fraction ``missing_rate`` of calls is set to NaN.

    Args:
        n_individuals: Number of individuals (rows).
        n_variants: Number of variants (columns).
        maf: Allele frequency per variant. Drawn from ``maf_range`` if None.
        maf_range: Range for drawn allele frequencies.
        missing_rate: Fraction of missing haplotype calls.
        rng: Random generator or seed.

    Returns:
        Simulated genotype.
    """
    if n_individuals <= 0 or n_variants <= 0:
        raise ConfigurationError(
            f"Genotype dimensions must be positive, got {n_individuals} x {n_variants}"
        )
    if not 0 <= missing_rate < 1:
        raise ConfigurationError(f"missing_rate must lie within [0, 1), got {missing_rate}")

    rng = np.random.default_rng(rng)

    if maf is None:
        low, high = validate_range(maf_range, "maf_range", lower_bound=0.0)
        freqs = rng.uniform(low, high, size=n_variants)
    else:
        freqs = validate_allele_frequencies(np.asarray(maf, dtype=float))
        if len(freqs) != n_variants:
            raise ConfigurationError(f"maf has length {len(freqs)}, expected {n_variants}")

    h1 = (rng.random((n_individuals, n_variants)) < freqs).astype(float)
    h2 = (rng.random((n_individuals, n_variants)) < freqs).astype(float)

    if missing_rate > 0:
        h1[rng.random(h1.shape) < missing_rate] = np.nan
        h2[rng.random(h2.shape) < missing_rate] = np.nan

    logger.debug(f"Created genotype: {n_individuals} individuals x {n_variants} variants")
    return Genotype(h1, h2)
