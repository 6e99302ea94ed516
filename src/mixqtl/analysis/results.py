"""Summary statistics from batched QTL scans.

This module provides:
- Conversion of regression estimates to a long-format association table
- Nominal p-values from a Student t with ``n - 2`` degrees of freedom
- Multiple testing correction
- Lead variant selection and a plain-text report
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from mixqtl.analysis.regression import RegressionResult
from mixqtl.utils.io import ensure_directory
from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import ShapeMismatchError, validate_file_exists

logger = get_logger(__name__)

RESULT_COLUMNS = ["phenotype_id", "variant_id", "slope", "slope_se", "n", "zscore", "pval_nominal"]


@dataclass
class QTLScanSummary:
    """Summary statistics for a QTL scan."""

    total_associations: int
    tested_associations: int
    significant_associations: int
    phenotypes_tested: int
    phenotypes_with_qtl: int
    variants_tested: int
    fdr_threshold: float


def summary_statistics(
    result: RegressionResult,
    variant_ids: Sequence[str] | None = None,
    phenotype_ids: Sequence[str] | None = None,
) -> pd.DataFrame:
    """
    Flatten a P x K regression result into one row per (phenotype, variant) pair.

    Args:
        result: Output of :func:`~mixqtl.analysis.regression.matrixqtl_one_dim`.
        variant_ids: Labels of the P predictors.
        phenotype_ids: Labels of the K responses.

    Returns:
        Association table with columns :data:`RESULT_COLUMNS`.
    """
    n_variants, n_phenotypes = result.shape
    if variant_ids is None:
        variant_ids = [f"var{i}" for i in range(n_variants)]
    if phenotype_ids is None:
        phenotype_ids = [f"pheno{k}" for k in range(n_phenotypes)]
    if len(variant_ids) != n_variants or len(phenotype_ids) != n_phenotypes:
        raise ShapeMismatchError(
            f"Expected {n_variants} variant and {n_phenotypes} phenotype labels, "
            f"got {len(variant_ids)} and {len(phenotype_ids)}"
        )

    zscore = result.zscore()
    dof = result.n - 2
    with np.errstate(invalid="ignore"):
        pvals = np.where(dof > 0, 2 * stats.t.sf(np.abs(zscore), np.maximum(dof, 1)), np.nan)

    # Transpose so rows are grouped by phenotype
    df = pd.DataFrame({
        "phenotype_id": np.repeat(np.asarray(phenotype_ids, dtype=object), n_variants),
        "variant_id": np.tile(np.asarray(variant_ids, dtype=object), n_phenotypes),
        "slope": result.bhat.T.ravel(),
        "slope_se": result.se.T.ravel(),
        "n": result.n.T.ravel().astype(np.int64),
        "zscore": zscore.T.ravel(),
        "pval_nominal": pvals.T.ravel(),
    })
    return df[RESULT_COLUMNS]


class QTLScanResults:
    """Handler for QTL scan summary statistics."""

    def __init__(
        self,
        results: pd.DataFrame | None = None,
        fdr_threshold: float = 0.05,
        output_dir: str | Path = "results/scan",
    ) -> None:
        """
        Initialize results handler.

        Args:
            results: Association table, e.g. from :func:`summary_statistics`.
            fdr_threshold: FDR threshold for significance.
            output_dir: Output directory for processed results.
        """
        self.fdr_threshold = fdr_threshold
        self.output_dir = ensure_directory(output_dir)
        self._results: pd.DataFrame | None = None
        self._summary: QTLScanSummary | None = None

        if results is not None:
            self._results = results.copy()
            self._calculate_summary()

    @classmethod
    def from_regression(
        cls,
        result: RegressionResult,
        variant_ids: Sequence[str] | None = None,
        phenotype_ids: Sequence[str] | None = None,
        **kwargs: object,
    ) -> QTLScanResults:
        """Build a handler directly from regression estimates."""
        return cls(summary_statistics(result, variant_ids, phenotype_ids), **kwargs)

    @property
    def results(self) -> pd.DataFrame | None:
        """Get the association table."""
        return self._results

    @property
    def summary(self) -> QTLScanSummary | None:
        """Get results summary."""
        return self._summary

    def load(self, results_file: str | Path) -> pd.DataFrame:
        """
        Load an association table written by :meth:`save`.

        Args:
            results_file: Path to a tab-separated results file.

        Returns:
            Results DataFrame.
        """
        results_file = Path(results_file)
        validate_file_exists(results_file, "Results file")

        self._results = pd.read_csv(results_file, sep="\t")
        logger.info(f"Loaded {len(self._results)} associations from {results_file}")

        self._calculate_summary()
        return self._results

    def _calculate_summary(self) -> None:
        """Calculate summary statistics."""
        if self._results is None:
            return

        df = self._results
        tested = df["pval_nominal"].notna()

        n_significant = 0
        n_phenotypes_with_qtl = 0
        if "qval" in df.columns:
            sig_mask = df["qval"] <= self.fdr_threshold
            n_significant = int(sig_mask.sum())
            n_phenotypes_with_qtl = int(df.loc[sig_mask, "phenotype_id"].nunique())

        self._summary = QTLScanSummary(
            total_associations=len(df),
            tested_associations=int(tested.sum()),
            significant_associations=n_significant,
            phenotypes_tested=int(df.loc[tested, "phenotype_id"].nunique()),
            phenotypes_with_qtl=n_phenotypes_with_qtl,
            variants_tested=int(df.loc[tested, "variant_id"].nunique()),
            fdr_threshold=self.fdr_threshold,
        )

    def apply_fdr_correction(
        self,
        method: Literal["bh", "bonferroni", "storey"] = "bh",
    ) -> pd.DataFrame:
        """
        Apply multiple testing correction over all tested pairs.

        Pairs without a p-value keep a missing q-value.

        Args:
            method: Correction method.

        Returns:
            Results with added ``qval`` column.
        """
        if self._results is None:
            raise ValueError("No results loaded")

        pvals = self._results["pval_nominal"].to_numpy(dtype=float)
        tested = ~np.isnan(pvals)
        qvals = np.full(len(pvals), np.nan)

        if tested.any():
            if method == "bh":
                from statsmodels.stats.multitest import multipletests

                _, qvals[tested], _, _ = multipletests(pvals[tested], method="fdr_bh")
            elif method == "bonferroni":
                qvals[tested] = np.minimum(pvals[tested] * tested.sum(), 1.0)
            elif method == "storey":
                qvals[tested] = self._storey_qvalue(pvals[tested])
            else:
                raise ValueError(f"Unknown correction method: {method}")

        self._results["qval"] = qvals

        n_sig = int((qvals[tested] <= self.fdr_threshold).sum())
        logger.info(
            f"Applied {method} correction: {n_sig} significant at FDR {self.fdr_threshold}"
        )

        self._calculate_summary()
        return self._results

    def _storey_qvalue(self, pvals: np.ndarray) -> np.ndarray:
        """Calculate Storey q-values."""
        lambdas = np.arange(0.05, 0.95, 0.05)
        pi0 = min(np.median([np.mean(pvals > lam) / (1 - lam) for lam in lambdas]), 1.0)

        n = len(pvals)
        order = np.argsort(pvals)
        ranked = pi0 * n * pvals[order] / np.arange(1, n + 1)
        # Enforce monotonicity from the largest p-value down
        qvals_sorted = np.minimum.accumulate(ranked[::-1])[::-1]

        qvals = np.empty(n)
        qvals[order] = np.minimum(qvals_sorted, 1.0)
        return qvals

    def get_significant(self, threshold: float | None = None) -> pd.DataFrame:
        """
        Get significant associations.

        Args:
            threshold: FDR threshold. Uses default if None.

        Returns:
            Significant associations, empty if no correction was applied.
        """
        if self._results is None:
            raise ValueError("No results loaded")

        threshold = self.fdr_threshold if threshold is None else threshold

        if "qval" not in self._results.columns:
            logger.warning("No q-value column found, returning empty DataFrame")
            return self._results.iloc[0:0].copy()
        return self._results[self._results["qval"] <= threshold].copy()

    def get_lead_variants(self, threshold: float | None = None) -> pd.DataFrame:
        """
        Get the variant with the smallest p-value per phenotype among significant pairs.

        Args:
            threshold: FDR threshold.

        Returns:
            Lead variants, one row per phenotype.
        """
        sig_results = self.get_significant(threshold)
        if len(sig_results) == 0:
            return sig_results

        lead = sig_results.loc[sig_results.groupby("phenotype_id")["pval_nominal"].idxmin()]
        return lead.reset_index(drop=True)

    def save(
        self,
        output_path: str | Path | None = None,
        significant_only: bool = False,
    ) -> Path:
        """
        Save results as a tab-separated file.

        Args:
            output_path: Output file path.
            significant_only: Only save significant results.

        Returns:
            Path to saved file.
        """
        if self._results is None:
            raise ValueError("No results loaded")

        if output_path is None:
            name = "qtl_significant.tsv" if significant_only else "qtl_results.tsv"
            output_path = self.output_dir / name

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        df = self.get_significant() if significant_only else self._results
        df.to_csv(output_path, sep="\t", index=False)

        logger.info(f"Saved {len(df)} associations to {output_path}")
        return output_path

    def generate_report(self, output_path: str | Path | None = None) -> Path:
        """
        Write a plain-text summary report.

        Args:
            output_path: Output file path.

        Returns:
            Path to report file.
        """
        if self._summary is None:
            raise ValueError("No results loaded")

        if output_path is None:
            output_path = self.output_dir / "qtl_report.txt"

        output_path = Path(output_path)
        s = self._summary

        with open(output_path, "w", encoding="utf-8") as f:
            f.write("=" * 60 + "\n")
            f.write("QTL Scan Report\n")
            f.write("=" * 60 + "\n\n")

            f.write("Summary Statistics\n")
            f.write("-" * 40 + "\n")
            f.write(f"Total pairs: {s.total_associations:,}\n")
            f.write(f"Pairs with defined estimates: {s.tested_associations:,}\n")
            f.write(f"Significant associations: {s.significant_associations:,}\n")
            f.write(f"Phenotypes tested: {s.phenotypes_tested:,}\n")
            f.write(f"Phenotypes with QTL: {s.phenotypes_with_qtl:,}\n")
            f.write(f"Variants tested: {s.variants_tested:,}\n")
            f.write(f"FDR threshold: {s.fdr_threshold}\n")

            if s.phenotypes_tested > 0:
                pct = (s.phenotypes_with_qtl / s.phenotypes_tested) * 100
                f.write(f"\nPercentage of phenotypes with QTL: {pct:.1f}%\n")

        logger.info(f"Generated report: {output_path}")
        return output_path
