"""Assignment of sampled reads to allele-specific and total counts.

A read starting at position ``p`` spans ``[p, p + read_length - 1]``. A read
spanning at least one heterozygous exonic SNP can be phased and is counted
toward its haplotype (``y1`` or ``y2``). Any other read only contributes to
the total count: it is observed as ``ystar`` and, for verification, recorded
per source haplotype as ``y1star`` and ``y2star``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from mixqtl.utils.validators import ConfigurationError, ShapeMismatchError

OBSERVED_FIELDS = ("y1", "y2", "ystar")
HIDDEN_FIELDS = ("y1star", "y2star")


@dataclass(frozen=True)
class ReadAssignment:
    """Observed and hidden counts of one individual."""

    observed: dict[str, int]
    hidden: dict[str, int]


def covers_snp(starts: np.ndarray, het_positions: np.ndarray, read_length: int) -> np.ndarray:
    """
    Whether each read spans at least one of the given SNP positions.

    Args:
        starts: Read start positions.
        het_positions: Sorted SNP positions.
        read_length: Read length.

    Returns:
        Boolean array, one entry per read.
    """
    starts = np.asarray(starts, dtype=np.int64)
    if len(het_positions) == 0 or len(starts) == 0:
        return np.zeros(len(starts), dtype=bool)

    first = np.searchsorted(het_positions, starts, side="left")
    last = np.searchsorted(het_positions, starts + read_length - 1, side="right")
    return last > first


def read2data(
    positions1: np.ndarray,
    positions2: np.ndarray,
    snp_positions: np.ndarray,
    heterozygous: np.ndarray,
    read_length: int,
) -> ReadAssignment:
    """
    Turn sampled read starts of both haplotypes into count records.

    Args:
        positions1: Start positions of reads from haplotype 1.
        positions2: Start positions of reads from haplotype 2.
        snp_positions: Exonic SNP positions.
        heterozygous: Heterozygosity indicator per exonic SNP.
        read_length: Read length.

    Returns:
        Observed counts ``y1``, ``y2``, ``ystar`` and hidden counts
        ``y1star``, ``y2star``.
    """
    if read_length <= 0:
        raise ConfigurationError(f"read_length must be positive, got {read_length}")

    snp_positions = np.asarray(snp_positions)
    heterozygous = np.asarray(heterozygous, dtype=bool)
    if snp_positions.shape != heterozygous.shape:
        raise ShapeMismatchError(
            f"snp_positions {snp_positions.shape} and heterozygosity indicators "
            f"{heterozygous.shape} differ in shape"
        )

    het_positions = np.sort(snp_positions[heterozygous])
    phased1 = covers_snp(positions1, het_positions, read_length)
    phased2 = covers_snp(positions2, het_positions, read_length)

    y1 = int(phased1.sum())
    y2 = int(phased2.sum())
    y1star = len(phased1) - y1
    y2star = len(phased2) - y2

    return ReadAssignment(
        observed={"y1": y1, "y2": y2, "ystar": y1star + y2star},
        hidden={"y1star": y1star, "y2star": y2star},
    )
