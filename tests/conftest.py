"""Pytest configuration and fixtures for mixqtl tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pandas as pd
import pytest

from mixqtl.simulation import GeneConfiguration, Genotype, create_gene, create_genotype


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_gene() -> GeneConfiguration:
    """Small gene with fixed exonic SNPs."""
    return create_gene(
        gene_length=500,
        snp_positions=[50, 150, 250, 350, 450],
        snp_frequencies=[0.1, 0.3, 0.5, 0.3, 0.2],
        theta={"type": "beta", "alpha": 2.0, "beta": 8.0},
        library_dist={"type": "poisson", "lambda": 500},
    )


@pytest.fixture
def sample_genotype() -> Genotype:
    """Genotype for 30 individuals and 20 variants."""
    return create_genotype(30, 20, maf_range=(0.1, 0.5), rng=7)


@pytest.fixture
def sample_scan_data() -> tuple[pd.DataFrame, pd.DataFrame]:
    """Genotype and phenotype matrices with a known effect of var0 on GENE_0."""
    np.random.seed(42)
    n_samples = 60
    samples = [f"SAMPLE_{i:02d}" for i in range(n_samples)]

    geno = pd.DataFrame(
        np.random.binomial(2, 0.3, size=(n_samples, 5)).astype(float),
        index=samples,
        columns=[f"var{i}" for i in range(5)],
    )
    pheno = pd.DataFrame(
        np.random.normal(size=(n_samples, 3)),
        index=samples,
        columns=[f"GENE_{k}" for k in range(3)],
    )
    pheno["GENE_0"] += 2.0 * geno["var0"]
    return geno, pheno


@pytest.fixture
def sample_genotype_file(temp_dir: Path, sample_scan_data) -> Path:
    """Genotype matrix written as TSV."""
    path = temp_dir / "genotypes.tsv"
    sample_scan_data[0].to_csv(path, sep="\t")
    return path


@pytest.fixture
def sample_phenotype_file(temp_dir: Path, sample_scan_data) -> Path:
    """Phenotype matrix written as TSV."""
    path = temp_dir / "phenotypes.tsv"
    sample_scan_data[1].to_csv(path, sep="\t")
    return path
