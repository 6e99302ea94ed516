"""Tests for results handling."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from mixqtl.analysis.regression import RegressionResult, count_non_missing, matrixqtl_one_dim
from mixqtl.analysis.results import RESULT_COLUMNS, QTLScanResults, QTLScanSummary, summary_statistics
from mixqtl.utils.validators import ShapeMismatchError


@pytest.fixture
def sample_results_data() -> pd.DataFrame:
    """Association table with a block of strong signals."""
    np.random.seed(42)
    n_results = 1000

    pvals = np.random.uniform(0, 1, n_results)
    pvals[:20] = 1e-8
    pvals[-5:] = np.nan

    return pd.DataFrame({
        "phenotype_id": [f"GENE_{i % 100:04d}" for i in range(n_results)],
        "variant_id": [f"rs{i}" for i in range(n_results)],
        "slope": np.random.normal(0, 1, n_results),
        "slope_se": np.random.uniform(0.1, 0.5, n_results),
        "n": np.full(n_results, 100),
        "zscore": np.random.normal(0, 1, n_results),
        "pval_nominal": pvals,
    })


@pytest.fixture
def sample_results_file(temp_dir: Path, sample_results_data: pd.DataFrame) -> Path:
    """Association table written as TSV."""
    results_path = temp_dir / "results.tsv"
    sample_results_data.to_csv(results_path, sep="\t", index=False)
    return results_path


class TestSummaryStatistics:
    """Tests for summary_statistics."""

    def test_long_format(self, sample_scan_data) -> None:
        """Test row layout and labels."""
        geno, pheno = sample_scan_data
        y, x = pheno.to_numpy(), geno.to_numpy()
        result = matrixqtl_one_dim(y, x, count_non_missing(y, x))

        df = summary_statistics(result, list(geno.columns), list(pheno.columns))

        assert list(df.columns) == RESULT_COLUMNS
        assert len(df) == 15
        assert list(df["phenotype_id"][:5]) == ["GENE_0"] * 5
        assert list(df["variant_id"][:5]) == [f"var{i}" for i in range(5)]
        row = df[(df["phenotype_id"] == "GENE_0") & (df["variant_id"] == "var0")].iloc[0]
        assert row["slope"] == pytest.approx(result.bhat[0, 0])
        assert row["pval_nominal"] < 1e-10
        assert (df["n"] == 60).all()

    def test_p_values_from_t_distribution(self) -> None:
        """Test the nominal p-value for a known statistic."""
        result = RegressionResult(
            bhat=np.array([[2.0]]), se=np.array([[1.0]]), n=np.array([[12]])
        )
        df = summary_statistics(result)
        # Two-sided t with 10 degrees of freedom at |t| = 2
        assert df.loc[0, "pval_nominal"] == pytest.approx(0.0733880, rel=1e-4)
        assert df.loc[0, "variant_id"] == "var0"
        assert df.loc[0, "phenotype_id"] == "pheno0"

    def test_undefined_estimates_have_no_p_value(self) -> None:
        """Test that NaN estimates propagate."""
        result = RegressionResult(
            bhat=np.array([[np.nan, 1.0]]),
            se=np.array([[np.nan, 0.5]]),
            n=np.array([[2, 50]]),
        )
        df = summary_statistics(result)
        assert np.isnan(df.loc[0, "pval_nominal"])
        assert not np.isnan(df.loc[1, "pval_nominal"])

    def test_label_length_mismatch_raises(self) -> None:
        """Test label validation."""
        result = RegressionResult(
            bhat=np.zeros((2, 1)), se=np.ones((2, 1)), n=np.full((2, 1), 10)
        )
        with pytest.raises(ShapeMismatchError):
            summary_statistics(result, variant_ids=["a"])


class TestQTLScanResults:
    """Tests for QTLScanResults class."""

    def test_load_results(self, temp_dir: Path, sample_results_file: Path) -> None:
        """Test loading results from file."""
        results = QTLScanResults(output_dir=temp_dir)
        df = results.load(sample_results_file)

        assert isinstance(df, pd.DataFrame)
        assert len(df) == 1000
        assert isinstance(results.summary, QTLScanSummary)
        assert results.summary.tested_associations == 995

    def test_load_missing_file_raises(self, temp_dir: Path) -> None:
        """Test loading a file that does not exist."""
        results = QTLScanResults(output_dir=temp_dir)
        with pytest.raises(FileNotFoundError):
            results.load(temp_dir / "missing.tsv")

    @pytest.mark.parametrize("method", ["bh", "bonferroni", "storey"])
    def test_q_values_bounded(
        self, temp_dir: Path, sample_results_data: pd.DataFrame, method: str
    ) -> None:
        """Test that q-values lie in [0, 1] and untested pairs stay missing."""
        results = QTLScanResults(sample_results_data, output_dir=temp_dir)
        corrected = results.apply_fdr_correction(method=method)

        tested = corrected["pval_nominal"].notna()
        qvals = corrected.loc[tested, "qval"]
        assert ((qvals >= 0) & (qvals <= 1)).all()
        assert corrected.loc[~tested, "qval"].isna().all()

    def test_bonferroni_is_conservative(
        self, temp_dir: Path, sample_results_data: pd.DataFrame
    ) -> None:
        """Test that Bonferroni finds no more than BH."""
        results = QTLScanResults(sample_results_data, output_dir=temp_dir)
        n_bonf = (results.apply_fdr_correction(method="bonferroni")["qval"] <= 0.05).sum()
        n_bh = (results.apply_fdr_correction(method="bh")["qval"] <= 0.05).sum()

        assert n_bonf <= n_bh
        assert n_bonf >= 20

    def test_unknown_method_raises(
        self, temp_dir: Path, sample_results_data: pd.DataFrame
    ) -> None:
        """Test that an unknown correction method is rejected."""
        results = QTLScanResults(sample_results_data, output_dir=temp_dir)
        with pytest.raises(ValueError):
            results.apply_fdr_correction(method="holm")

    def test_get_significant(self, temp_dir: Path, sample_results_data: pd.DataFrame) -> None:
        """Test filtering significant associations."""
        results = QTLScanResults(sample_results_data, output_dir=temp_dir)
        assert len(results.get_significant()) == 0

        results.apply_fdr_correction(method="bh")
        significant = results.get_significant()
        assert (significant["qval"] <= 0.05).all()
        assert results.summary.significant_associations == len(significant)

    def test_get_lead_variants(self, temp_dir: Path, sample_results_data: pd.DataFrame) -> None:
        """Test one lead variant per phenotype."""
        results = QTLScanResults(sample_results_data, output_dir=temp_dir)
        results.apply_fdr_correction(method="bh")

        lead = results.get_lead_variants()

        assert lead["phenotype_id"].is_unique
        assert len(lead) == results.summary.phenotypes_with_qtl

    def test_save_and_report(self, temp_dir: Path, sample_results_data: pd.DataFrame) -> None:
        """Test writing results and the report."""
        results = QTLScanResults(sample_results_data, output_dir=temp_dir)
        results.apply_fdr_correction(method="bh")

        full = results.save()
        significant = results.save(significant_only=True)
        report = results.generate_report()

        assert full.name == "qtl_results.tsv"
        assert significant.name == "qtl_significant.tsv"
        assert len(pd.read_csv(full, sep="\t")) == 1000
        assert "QTL Scan Report" in report.read_text()

    def test_from_regression(self, temp_dir: Path, sample_scan_data) -> None:
        """Test building the handler from regression estimates."""
        geno, pheno = sample_scan_data
        y, x = pheno.to_numpy(), geno.to_numpy()
        result = matrixqtl_one_dim(y, x, count_non_missing(y, x))

        results = QTLScanResults.from_regression(
            result, list(geno.columns), list(pheno.columns), output_dir=temp_dir
        )
        results.apply_fdr_correction()

        lead = results.get_lead_variants()
        assert "GENE_0" in set(lead["phenotype_id"])
        assert lead.loc[lead["phenotype_id"] == "GENE_0", "variant_id"].iloc[0] == "var0"

    def test_no_results_raises(self, temp_dir: Path) -> None:
        """Test operations without loaded results."""
        results = QTLScanResults(output_dir=temp_dir)
        with pytest.raises(ValueError):
            results.apply_fdr_correction()
        with pytest.raises(ValueError):
            results.save()
