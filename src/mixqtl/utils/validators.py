"""Validation utilities and error types for mixqtl."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np

from mixqtl.utils.logging import get_logger

logger = get_logger(__name__)


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


class ConfigurationError(ValidationError):
    """Raised for an unknown distribution type or an invalid model parameter."""

    pass


class ShapeMismatchError(ValidationError, ValueError):
    """Raised when matrix dimensions are incompatible."""

    pass


class SamplingInfeasibilityError(ValidationError):
    """Raised when more causal variants are requested than are eligible."""

    pass


def validate_file_exists(
    file_path: str | Path,
    description: str = "file",
    raise_error: bool = True,
) -> bool:
    """
    Validate that a file exists.

    Args:
        file_path: Path to the file.
        description: Description of the file for error messages.
        raise_error: If True, raise an error on failure.

    Returns:
        True if file exists.

    Raises:
        FileNotFoundError: If file does not exist and raise_error is True.
    """
    path = Path(file_path)
    if not path.exists():
        msg = f"{description} not found: {file_path}"
        if raise_error:
            raise FileNotFoundError(msg)
        logger.warning(msg)
        return False
    return True


def validate_range(
    values: Sequence[float],
    name: str,
    integer: bool = False,
    lower_bound: float | None = None,
) -> tuple[float, float]:
    """
    Validate a two-element ``[low, high]`` range.

    Args:
        values: The range.
        name: Parameter name for error messages.
        integer: Require integer bounds.
        lower_bound: Smallest value allowed for ``low``.

    Returns:
        The range as a ``(low, high)`` tuple.

    Raises:
        ConfigurationError: If the range is malformed.
    """
    if len(values) != 2:
        raise ConfigurationError(f"{name} must have exactly two elements, got {len(values)}")

    low, high = values
    if integer and (int(low) != low or int(high) != high):
        raise ConfigurationError(f"{name} bounds must be integers, got {list(values)}")
    if low > high:
        raise ConfigurationError(f"{name} lower bound exceeds upper bound: {list(values)}")
    if lower_bound is not None and low < lower_bound:
        raise ConfigurationError(f"{name} lower bound must be >= {lower_bound}, got {low}")

    if integer:
        return int(low), int(high)
    return float(low), float(high)


def validate_allele_frequencies(maf: np.ndarray) -> np.ndarray:
    """
    Validate an allele-frequency vector.

    Returns:
        The frequencies as a 1-D float array.

    Raises:
        ShapeMismatchError: If ``maf`` is not one-dimensional.
        ConfigurationError: If any frequency lies outside [0, 1].
    """
    maf = np.asarray(maf, dtype=float)
    if maf.ndim != 1:
        raise ShapeMismatchError(f"Allele frequencies must be a vector, got shape {maf.shape}")
    if np.isnan(maf).any() or (maf < 0).any() or (maf > 1).any():
        raise ConfigurationError("Allele frequencies must lie within [0, 1]")
    return maf


def validate_genotype_shapes(
    h1: np.ndarray,
    h2: np.ndarray,
    betas: np.ndarray | None = None,
) -> tuple[int, int]:
    """
    Validate that two haplotype matrices (and optionally an effect vector) agree.

    Returns:
        ``(n_individuals, n_variants)``.

    Raises:
        ShapeMismatchError: On any dimension mismatch.
    """
    if h1.ndim != 2 or h2.ndim != 2:
        raise ShapeMismatchError(
            f"Haplotype matrices must be two-dimensional, got {h1.shape} and {h2.shape}"
        )
    if h1.shape != h2.shape:
        raise ShapeMismatchError(f"Haplotype matrices differ in shape: {h1.shape} vs {h2.shape}")

    n_individuals, n_variants = h1.shape
    if betas is not None and np.shape(betas) != (n_variants,):
        raise ShapeMismatchError(
            f"Effect vector has shape {np.shape(betas)}, expected ({n_variants},)"
        )
    return n_individuals, n_variants


def validate_regression_shapes(y: np.ndarray, x: np.ndarray, n: np.ndarray) -> None:
    """
    Validate the inputs of the batched regression.

    Args:
        y: Response matrix, N x K.
        x: Predictor matrix, N x P.
        n: Sample-size matrix, P x K.

    Raises:
        ShapeMismatchError: If the dimensions are incompatible.
    """
    for name, arr in (("Y", y), ("X", x), ("n", n)):
        if arr.ndim != 2:
            raise ShapeMismatchError(f"{name} must be a matrix, got shape {arr.shape}")

    if y.shape[0] != x.shape[0]:
        raise ShapeMismatchError(
            f"Y and X must have the same number of rows: {y.shape[0]} vs {x.shape[0]}"
        )
    expected = (x.shape[1], y.shape[1])
    if n.shape != expected:
        raise ShapeMismatchError(f"n has shape {n.shape}, expected {expected} (P x K)")
