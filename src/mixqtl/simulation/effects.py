"""Sparse causal effect (log aFC) vectors with a controlled genetic variance.

The variance explained by a set of causal variants is

    2 * sum_p beta_p^2 * f_p * (1 - f_p)

where ``f_p`` is the allele frequency and ``beta_p`` the log aFC of variant p.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import (
    SamplingInfeasibilityError,
    validate_allele_frequencies,
    validate_range,
)

logger = get_logger(__name__)


def genetic_variance(betas: np.ndarray, maf: np.ndarray) -> float:
    """Variance due to genetic effect, ``2 * sum(beta^2 * f * (1 - f))``."""
    betas = np.asarray(betas, dtype=float)
    maf = np.asarray(maf, dtype=float)
    return float(2 * np.sum(betas**2 * maf * (1 - maf)))


def get_betas_controlling_var(
    genetic_var: float,
    maf: np.ndarray,
    rng: np.random.Generator | int | None = None,
) -> np.ndarray:
    """
    Effect sizes for the given causal variants that explain ``genetic_var``.

    The variance is split across variants by a random simplex and each share
    is converted to an effect magnitude with a random sign.

    Args:
        genetic_var: Total variance to explain.
        maf: Allele frequencies of the causal variants.
        rng: Random generator or seed.

    Returns:
        Effect sizes, one per causal variant.
    """
    rng = np.random.default_rng(rng)
    maf = np.asarray(maf, dtype=float)
    ncausal = len(maf)

    fraction = rng.uniform(size=ncausal)
    fraction = fraction / fraction.sum()

    var_by_beta = genetic_var * fraction
    with np.errstate(divide="ignore", invalid="ignore"):
        log_beta = np.sqrt(var_by_beta / (2 * maf * (1 - maf)))
    sign = rng.choice(np.array([1.0, -1.0]), size=ncausal, replace=True)
    return sign * log_beta


def create_betas(
    maf: Sequence[float],
    genetic_var_range: Sequence[float],
    ncausal_range: Sequence[int],
    rng: np.random.Generator | int | None = None,
) -> np.ndarray:
    """
    Simulate a sparse effect vector with controlled genetic variance.

    The target variance is drawn uniformly from ``genetic_var_range`` and the
    number of causal variants uniformly from the inclusive integers of
    ``ncausal_range``. Causal variants are chosen among variants with a
    positive allele frequency.

    Args:
        maf: Allele frequencies of the P variants.
        genetic_var_range: ``[low, high]`` range of variance due to genetic effect.
        ncausal_range: ``[low, high]`` range of the number of causal variants.
        rng: Random generator or seed.

    Returns:
        Length-P vector of log aFC, zero at non-causal variants.

    Raises:
        SamplingInfeasibilityError: If fewer variants have a positive
            frequency than the drawn number of causal variants.

    Example:
        >>> betas = create_betas(np.random.uniform(size=100), [0.015, 0.075], [1, 3])
    """
    rng = np.random.default_rng(rng)
    maf = validate_allele_frequencies(maf)
    var_low, var_high = validate_range(genetic_var_range, "genetic_var_range", lower_bound=0.0)
    causal_low, causal_high = validate_range(
        ncausal_range, "ncausal_range", integer=True, lower_bound=0
    )

    gen_var = rng.uniform(var_low, var_high)
    ncausal = int(rng.integers(causal_low, causal_high, endpoint=True))

    eligible = np.flatnonzero(maf > 0)
    if ncausal > len(eligible):
        raise SamplingInfeasibilityError(
            f"Requested {ncausal} causal variants but only {len(eligible)} "
            "variants have a positive allele frequency"
        )

    causals = rng.choice(eligible, size=ncausal, replace=False)
    fixed = causals[maf[causals] == 1]
    if len(fixed):
        logger.warning(
            f"Causal variant(s) {fixed.tolist()} have allele frequency 1; "
            "their effect size is not finite"
        )

    out = np.zeros(len(maf))
    out[causals] = get_betas_controlling_var(gen_var, maf[causals], rng)

    logger.debug(
        f"Drew {ncausal} causal variant(s) explaining genetic variance {gen_var:.4f}"
    )
    return out
