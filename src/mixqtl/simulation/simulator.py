"""Multi-SNP read-count simulator.

For every individual the simulator draws an abundance-noise multiplier and a
library size, scales the abundance of each haplotype by ``exp(G_h . beta)``,
draws haplotype read counts, places the reads along the gene, draws which
exonic SNPs are heterozygous, and splits the reads into allele-specific and
total counts with :func:`~mixqtl.simulation.reads.read2data`.

Each individual draws from its own random stream spawned from a single
:class:`numpy.random.SeedSequence`, so output depends only on the seed and
the inputs, not on the order in which individuals are processed.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Mapping, Union

import numpy as np
import pandas as pd

from mixqtl.simulation.distributions import (
    ReadModel,
    draw_library_size,
    draw_read_count,
    draw_theta,
    parse_read_dist,
    read_scale,
    theta_scale,
)
from mixqtl.simulation.gene import GeneConfiguration
from mixqtl.simulation.genotype import Genotype, impute_missing_dosage
from mixqtl.simulation.reads import HIDDEN_FIELDS, OBSERVED_FIELDS, read2data
from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import ConfigurationError, validate_genotype_shapes

logger = get_logger(__name__)

SeedLike = Union[int, np.random.SeedSequence, np.random.Generator, None]

OBSERVED_COLUMNS = (*OBSERVED_FIELDS, "library_size", "hap1_count", "hap2_count", "total_count")


@dataclass(frozen=True, eq=False)
class ReadCountSimulation:
    """
    Result of :func:`simulate_read_count_multi`.

    Attributes:
        observed: One row per individual with allele-specific counts ``y1``,
            ``y2``, the non allele-specific count ``ystar``, the library size,
            the haplotype read counts and their sum ``total_count``.
        hidden: Unobserved per-haplotype non allele-specific counts
            ``y1star`` and ``y2star``, for verification only.
        betas: The effect vector used.
        sigma: Scale of the read-count model, NaN when it has none.
        sigma0: Log-scale sd of the abundance noise, NaN when it has none.
    """

    observed: pd.DataFrame
    hidden: pd.DataFrame
    betas: np.ndarray
    sigma: float
    sigma0: float

    @property
    def n_individuals(self) -> int:
        return len(self.observed)

    def metadata(self) -> dict[str, Any]:
        return {
            "betas": self.betas.tolist(),
            "sigma": None if math.isnan(self.sigma) else self.sigma,
            "sigma0": None if math.isnan(self.sigma0) else self.sigma0,
        }


def _seed_sequence(seed: SeedLike) -> np.random.SeedSequence:
    if isinstance(seed, np.random.SeedSequence):
        return seed
    if isinstance(seed, np.random.Generator):
        return np.random.SeedSequence(int(seed.integers(2**63)))
    return np.random.SeedSequence(seed)


def _as_genotype(genotype: Genotype | Mapping[str, Any]) -> Genotype:
    if isinstance(genotype, Genotype):
        return genotype
    if isinstance(genotype, Mapping) and "h1" in genotype and "h2" in genotype:
        return Genotype(np.asarray(genotype["h1"]), np.asarray(genotype["h2"]))
    raise ConfigurationError("genotype must be a Genotype or a mapping with 'h1' and 'h2'")


def simulate_read_count_multi(
    gene: GeneConfiguration,
    genotype: Genotype | Mapping[str, Any],
    betas: np.ndarray,
    read_length: int,
    y_dist: ReadModel | Mapping[str, Any],
    seed: SeedLike = None,
) -> ReadCountSimulation:
    """
    Simulate total and allele-specific read counts under a multi-SNP model.

    Args:
        gene: Gene configuration, see :func:`~mixqtl.simulation.gene.create_gene`.
        genotype: Haplotype dosages; missing calls are imputed to 0.5.
        betas: Log aFC per variant.
        read_length: Read length.
        y_dist: Read-count model given library size and relative abundance,
            or a tagged mapping such as ``{"type": "negbinom",
            "size_factor": 2, "prob": 2 / 3}``.
        seed: Seed, seed sequence or generator for the per-individual streams.

    Returns:
        Observed and hidden counts with the effect vector and noise scales.

    Raises:
        ConfigurationError: If a distribution model is unknown or invalid.
        ShapeMismatchError: If genotype matrices and ``betas`` disagree.
    """
    start_time = time.time()

    y_dist = parse_read_dist(y_dist)
    genotype = _as_genotype(genotype)
    betas = np.asarray(betas, dtype=float)
    n_individuals, _ = validate_genotype_shapes(genotype.h1, genotype.h2, betas)
    if read_length <= 0:
        raise ConfigurationError(f"read_length must be positive, got {read_length}")

    g1 = impute_missing_dosage(genotype.h1)
    g2 = impute_missing_dosage(genotype.h2)
    fold1 = np.exp(g1 @ betas)
    fold2 = np.exp(g2 @ betas)

    positions = np.arange(1, gene.gene_length + 1)
    het_prob = gene.heterozygosity_probabilities()

    observed = {name: np.zeros(n_individuals, dtype=np.int64) for name in OBSERVED_COLUMNS}
    hidden = {name: np.zeros(n_individuals, dtype=np.int64) for name in HIDDEN_FIELDS}

    streams = _seed_sequence(seed).spawn(n_individuals)
    for i, stream in enumerate(streams):
        rng = np.random.default_rng(stream)

        theta_i = draw_theta(gene.theta, rng)
        library_size = draw_library_size(gene.library_dist, rng)

        hap1 = draw_read_count(y_dist, library_size, fold1[i] * theta_i, rng)
        hap2 = draw_read_count(y_dist, library_size, fold2[i] * theta_i, rng)

        starts1 = rng.choice(positions, size=hap1, replace=True, p=gene.position_weights)
        starts2 = rng.choice(positions, size=hap2, replace=True, p=gene.position_weights)
        heterozygous = rng.random(gene.n_snps) < het_prob

        assignment = read2data(starts1, starts2, gene.snp_positions, heterozygous, read_length)

        for name, value in assignment.observed.items():
            observed[name][i] = value
        for name, value in assignment.hidden.items():
            hidden[name][i] = value
        observed["library_size"][i] = library_size
        observed["hap1_count"][i] = hap1
        observed["hap2_count"][i] = hap2
        observed["total_count"][i] = hap1 + hap2

    result = ReadCountSimulation(
        observed=pd.DataFrame(observed, columns=list(OBSERVED_COLUMNS)),
        hidden=pd.DataFrame(hidden, columns=list(HIDDEN_FIELDS)),
        betas=betas,
        sigma=read_scale(y_dist),
        sigma0=theta_scale(gene.theta),
    )

    logger.info(
        f"Simulated read counts for {n_individuals} individuals "
        f"(mean total {result.observed['total_count'].mean():.1f}) "
        f"in {time.time() - start_time:.2f}s"
    )
    return result
