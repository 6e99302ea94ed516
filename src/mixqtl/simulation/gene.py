"""Gene configuration used by the read-count simulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import numpy as np

from mixqtl.simulation.distributions import (
    BetaTheta,
    LibraryModel,
    PoissonLibrary,
    ThetaModel,
    parse_library_dist,
    parse_theta,
)
from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import ConfigurationError, ShapeMismatchError, validate_range

logger = get_logger(__name__)

DEFAULT_THETA = BetaTheta(alpha=2.0, beta=8.0)
DEFAULT_LIBRARY = PoissonLibrary(lam=500.0)


@dataclass(frozen=True, eq=False)
class GeneConfiguration:
    """
    Immutable description of a simulated gene.

    Attributes:
        gene_length: Total exonic length ``L_gene``.
        position_weights: Read-start probability for each position
            ``1..gene_length``; sums to 1.
        snp_positions: 1-based positions of exonic SNPs.
        snp_frequencies: Allele frequency of each exonic SNP.
        theta: Between-individual abundance-noise model or tagged mapping.
        library_dist: Library-size model or tagged mapping.
    """

    gene_length: int
    position_weights: np.ndarray = field(repr=False)
    snp_positions: np.ndarray
    snp_frequencies: np.ndarray
    theta: ThetaModel = DEFAULT_THETA
    library_dist: LibraryModel = DEFAULT_LIBRARY

    def __post_init__(self) -> None:
        weights = np.asarray(self.position_weights, dtype=float)
        positions = np.asarray(self.snp_positions, dtype=np.int64)
        frequencies = np.asarray(self.snp_frequencies, dtype=float)
        object.__setattr__(self, "position_weights", weights)
        object.__setattr__(self, "snp_positions", positions)
        object.__setattr__(self, "snp_frequencies", frequencies)
        object.__setattr__(self, "theta", parse_theta(self.theta))
        object.__setattr__(self, "library_dist", parse_library_dist(self.library_dist))
        self.validate()
        # Sampling read starts needs a tighter sum than the validation tolerance
        object.__setattr__(self, "position_weights", weights / weights.sum())

    @property
    def n_snps(self) -> int:
        return len(self.snp_positions)

    def validate(self) -> None:
        if self.gene_length <= 0:
            raise ConfigurationError(f"gene_length must be positive, got {self.gene_length}")
        if self.position_weights.shape != (self.gene_length,):
            raise ShapeMismatchError(
                f"position_weights has shape {self.position_weights.shape}, "
                f"expected ({self.gene_length},)"
            )
        if (self.position_weights < 0).any():
            raise ConfigurationError("position_weights must be non-negative")
        if not np.isclose(self.position_weights.sum(), 1.0):
            raise ConfigurationError(
                f"position_weights must sum to 1, got {self.position_weights.sum():.6f}"
            )
        if self.snp_positions.shape != self.snp_frequencies.shape or self.snp_positions.ndim != 1:
            raise ShapeMismatchError(
                f"snp_positions {self.snp_positions.shape} and snp_frequencies "
                f"{self.snp_frequencies.shape} must be vectors of equal length"
            )
        if len(self.snp_positions) and (
            self.snp_positions.min() < 1 or self.snp_positions.max() > self.gene_length
        ):
            raise ConfigurationError(f"snp_positions must lie within [1, {self.gene_length}]")
        if ((self.snp_frequencies < 0) | (self.snp_frequencies > 1)).any():
            raise ConfigurationError("snp_frequencies must lie within [0, 1]")

    def heterozygosity_probabilities(self) -> np.ndarray:
        """Hardy-Weinberg heterozygote probability ``2 f (1 - f)`` per exonic SNP."""
        return 2 * self.snp_frequencies * (1 - self.snp_frequencies)


def create_gene(
    gene_length: int = 1000,
    n_snps: int = 5,
    snp_positions: Sequence[int] | None = None,
    snp_frequencies: Sequence[float] | None = None,
    snp_maf_range: Sequence[float] = (0.05, 0.5),
    position_weights: Sequence[float] | None = None,
    theta: ThetaModel | Mapping[str, Any] | None = None,
    library_dist: LibraryModel | Mapping[str, Any] | None = None,
    rng: np.random.Generator | int | None = None,
) -> GeneConfiguration:
    """
    Create a gene configuration.

    Unspecified SNP positions are drawn without replacement from
    ``1..gene_length`` and unspecified SNP frequencies uniformly from
    ``snp_maf_range``. Read-start weights default to uniform and are
    normalized to sum to 1 when given.

    Args:
        gene_length: Total exonic length.
        n_snps: Number of exonic SNPs when ``snp_positions`` is not given.
        snp_positions: 1-based exonic SNP positions.
        snp_frequencies: Allele frequencies of the exonic SNPs.
        snp_maf_range: Range for drawn SNP frequencies.
        position_weights: Relative read-start density per position.
        theta: Abundance-noise model or tagged mapping.
        library_dist: Library-size model or tagged mapping.
        rng: Random generator or seed.

    Returns:
        Validated gene configuration.
    """
    rng = np.random.default_rng(rng)

    if snp_positions is None:
        if not 0 <= n_snps <= gene_length:
            raise ConfigurationError(f"n_snps must lie within [0, {gene_length}], got {n_snps}")
        snp_positions = np.sort(rng.choice(np.arange(1, gene_length + 1), size=n_snps, replace=False))
    snp_positions = np.asarray(snp_positions, dtype=np.int64)

    if snp_frequencies is None:
        low, high = validate_range(snp_maf_range, "snp_maf_range", lower_bound=0.0)
        snp_frequencies = rng.uniform(low, high, size=len(snp_positions))

    if position_weights is None:
        weights = np.full(gene_length, 1.0 / gene_length)
    else:
        weights = np.asarray(position_weights, dtype=float)
        total = weights.sum()
        if total <= 0:
            raise ConfigurationError("position_weights must have a positive sum")
        weights = weights / total

    gene = GeneConfiguration(
        gene_length=int(gene_length),
        position_weights=weights,
        snp_positions=snp_positions,
        snp_frequencies=np.asarray(snp_frequencies, dtype=float),
        theta=theta if theta is not None else DEFAULT_THETA,
        library_dist=library_dist if library_dist is not None else DEFAULT_LIBRARY,
    )
    logger.debug(f"Created gene: length {gene.gene_length}, {gene.n_snps} exonic SNPs")
    return gene
