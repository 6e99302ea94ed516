"""Association testing between genotypes and expression phenotypes."""

from mixqtl.analysis.regression import RegressionResult, count_non_missing, matrixqtl_one_dim
from mixqtl.analysis.results import QTLScanResults, summary_statistics

__all__ = [
    "RegressionResult",
    "count_non_missing",
    "matrixqtl_one_dim",
    "QTLScanResults",
    "summary_statistics",
]
