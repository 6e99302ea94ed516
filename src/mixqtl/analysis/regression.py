"""Batched simple linear regression for QTL scans.

Every predictor (column of X) is regressed on its own against every response
(column of Y). All P x K regressions are computed at once from the
sufficient statistics

    Sxy = X^T Y,  Sxx = sum(X^2),  Syy = sum(Y^2),  Sx = sum(X),  Sy = sum(Y)

taken per pair over the jointly observed rows and centered with the number of
those rows ``n``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import validate_regression_shapes

logger = get_logger(__name__)

# Relative tolerance below which a centered sum of squares counts as zero
DEGENERATE_TOL = 1e-12


@dataclass(frozen=True, eq=False)
class RegressionResult:
    """
    Per-pair regression estimates.

    All matrices are P x K: row ``i`` is predictor ``i``, column ``k`` is
    response ``k``. Undefined estimates are NaN.
    """

    bhat: np.ndarray
    se: np.ndarray
    n: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.bhat.shape

    def zscore(self) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.bhat / self.se


def count_non_missing(y: np.ndarray, x: np.ndarray) -> np.ndarray:
    """
    Number of observations where both predictor and response are present.

    Args:
        y: Response matrix, N x K, NaN for missing.
        x: Predictor matrix, N x P, NaN for missing.

    Returns:
        P x K integer matrix.
    """
    y = np.asarray(y, dtype=float)
    x = np.asarray(x, dtype=float)
    present_y = (~np.isnan(y)).astype(np.int64)
    present_x = (~np.isnan(x)).astype(np.int64)
    return present_x.T @ present_y


def matrixqtl_one_dim(y: np.ndarray, x: np.ndarray, n: np.ndarray) -> RegressionResult:
    """
    Regress each response on each predictor separately.

    Missing values (NaN) are handled pairwise: the sums for a (predictor,
    response) pair only run over rows where both are observed. ``n``
    supplies the per-pair sample size, see :func:`count_non_missing`.

    Args:
        y: Response matrix, N x K.
        x: Predictor matrix, N x P.
        n: Sample size of each (predictor, response) pair, P x K.

    Returns:
        Effect estimates and standard errors, each P x K. Pairs with
        ``n <= 2`` or a constant predictor give NaN.

    Raises:
        ShapeMismatchError: If the dimensions of ``y``, ``x`` and ``n`` are
            incompatible.
    """
    y = np.asarray(y, dtype=float)
    x = np.asarray(x, dtype=float)
    n = np.asarray(n, dtype=float)
    validate_regression_shapes(y, x, n)

    present_y = (~np.isnan(y)).astype(float)
    present_x = (~np.isnan(x)).astype(float)
    y = np.nan_to_num(y, nan=0.0)
    x = np.nan_to_num(x, nan=0.0)

    # Every sum is P x K and runs over the rows where both values are present
    sxy = x.T @ y
    sxx = (x**2).T @ present_y
    syy = present_x.T @ y**2
    sx = x.T @ present_y
    sy = present_x.T @ y

    with np.errstate(divide="ignore", invalid="ignore"):
        sxy_c = sxy - sx * sy / n
        sxx_c = sxx - sx**2 / n
        syy_c = syy - sy**2 / n

        bhat = sxy_c / sxx_c
        sigma2 = (syy_c - bhat**2 * sxx_c) / (n - 2)
        # Rounding can leave a tiny negative residual for exact fits
        sigma2 = np.where(sigma2 < 0, 0.0, sigma2)
        se = np.sqrt(sigma2 / sxx_c)

    degenerate = (n <= 2) | (np.abs(sxx_c) <= DEGENERATE_TOL * np.maximum(sxx, 1.0))
    bhat = np.where(degenerate, np.nan, bhat)
    se = np.where(degenerate, np.nan, se)

    n_undefined = int(degenerate.sum())
    if n_undefined:
        logger.debug(f"{n_undefined} of {degenerate.size} pairs have undefined estimates")

    return RegressionResult(bhat=bhat, se=se, n=n)
