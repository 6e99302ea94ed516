"""Tests for the multi-SNP read-count simulator."""

import math

import numpy as np
import pytest

from mixqtl.simulation import (
    GeneConfiguration,
    Genotype,
    ReadCountSimulation,
    allele_frequencies,
    create_betas,
    create_gene,
    simulate_read_count_multi,
)
from mixqtl.simulation.simulator import OBSERVED_COLUMNS
from mixqtl.utils.validators import ConfigurationError, ShapeMismatchError


@pytest.fixture
def simulation(sample_gene: GeneConfiguration, sample_genotype: Genotype) -> ReadCountSimulation:
    """Poisson simulation over the sample gene and genotype."""
    betas = create_betas(allele_frequencies(sample_genotype), [0.015, 0.075], [1, 3], rng=3)
    return simulate_read_count_multi(
        sample_gene, sample_genotype, betas, read_length=75, y_dist={"type": "poisson"}, seed=1
    )


class TestSimulateReadCountMulti:
    """Tests for simulate_read_count_multi."""

    def test_one_row_per_individual(self, simulation: ReadCountSimulation) -> None:
        """Test output dimensions and columns."""
        assert simulation.n_individuals == 30
        assert list(simulation.observed.columns) == list(OBSERVED_COLUMNS)
        assert list(simulation.hidden.columns) == ["y1star", "y2star"]
        assert len(simulation.hidden) == 30

    def test_counts_are_non_negative_integers(self, simulation: ReadCountSimulation) -> None:
        """Test count types."""
        for frame in (simulation.observed, simulation.hidden):
            assert all(np.issubdtype(dtype, np.integer) for dtype in frame.dtypes)
            assert (frame.to_numpy() >= 0).all()

    def test_counts_are_consistent(self, simulation: ReadCountSimulation) -> None:
        """Test that every read is assigned exactly once."""
        obs, hid = simulation.observed, simulation.hidden

        np.testing.assert_array_equal(obs["total_count"], obs["hap1_count"] + obs["hap2_count"])
        np.testing.assert_array_equal(obs["total_count"], obs["y1"] + obs["y2"] + obs["ystar"])
        np.testing.assert_array_equal(obs["ystar"], hid["y1star"] + hid["y2star"])
        np.testing.assert_array_equal(obs["hap1_count"], obs["y1"] + hid["y1star"])
        for column in ("y1", "y2", "ystar"):
            assert (obs["total_count"] >= obs[column]).all()

    def test_poisson_metadata(self, simulation: ReadCountSimulation) -> None:
        """Test reported scales for Poisson reads with beta noise."""
        assert simulation.sigma == 1.0
        assert math.isnan(simulation.sigma0)
        meta = simulation.metadata()
        assert meta["sigma"] == 1.0
        assert meta["sigma0"] is None
        assert len(meta["betas"]) == 20

    def test_deterministic_with_seed(
        self, sample_gene: GeneConfiguration, sample_genotype: Genotype
    ) -> None:
        """Test that the same seed reproduces the output exactly."""
        betas = np.zeros(sample_genotype.n_variants)
        kwargs = dict(read_length=50, y_dist={"type": "lognormal", "sigma": 0.3}, seed=99)

        first = simulate_read_count_multi(sample_gene, sample_genotype, betas, **kwargs)
        second = simulate_read_count_multi(sample_gene, sample_genotype, betas, **kwargs)

        assert first.observed.equals(second.observed)
        assert first.hidden.equals(second.hidden)

    def test_different_seeds_differ(
        self, sample_gene: GeneConfiguration, sample_genotype: Genotype
    ) -> None:
        """Test that the seed drives the draws."""
        betas = np.zeros(sample_genotype.n_variants)
        first = simulate_read_count_multi(sample_gene, sample_genotype, betas, 75, {"type": "poisson"}, seed=1)
        second = simulate_read_count_multi(sample_gene, sample_genotype, betas, 75, {"type": "poisson"}, seed=2)
        assert not first.observed.equals(second.observed)

    def test_lognormal_and_negbinom_scales(self, sample_genotype: Genotype) -> None:
        """Test reported scales for the other read and theta models."""
        gene = create_gene(
            gene_length=300,
            theta={"type": "lognormal", "k": -2.0, "sigma": 0.16},
            library_dist={"type": "negbinom", "prob": 0.02, "size": 20},
            rng=0,
        )
        betas = np.zeros(sample_genotype.n_variants)

        lognormal = simulate_read_count_multi(
            gene, sample_genotype, betas, 50, {"type": "lognormal", "sigma": 0.4}, seed=0
        )
        assert lognormal.sigma == 0.4
        assert lognormal.sigma0 == pytest.approx(0.4)

        negbinom = simulate_read_count_multi(
            gene, sample_genotype, betas, 50, {"type": "negbinom", "size_factor": 2, "prob": 2 / 3}, seed=0
        )
        assert math.isnan(negbinom.sigma)
        assert negbinom.metadata()["sigma"] is None

    def test_missing_genotypes_are_imputed(self, sample_gene: GeneConfiguration) -> None:
        """Test that NaN calls do not propagate into the counts."""
        h1 = np.array([[0.0, np.nan], [1.0, 0.0], [np.nan, 1.0]])
        h2 = np.array([[1.0, 0.0], [np.nan, np.nan], [0.0, 0.0]])
        result = simulate_read_count_multi(
            sample_gene, Genotype(h1, h2), np.array([0.3, -0.2]), 75, {"type": "poisson"}, seed=5
        )
        assert result.observed.notna().all().all()
        assert result.n_individuals == 3

    def test_gene_built_directly(self, sample_genotype: Genotype) -> None:
        """Test a gene built from the dataclass with mappings and near-unit weights."""
        weights = np.full(100, 0.01)
        weights[0] += 1e-6
        gene = GeneConfiguration(
            gene_length=100,
            position_weights=weights,
            snp_positions=np.array([10, 60]),
            snp_frequencies=np.array([0.2, 0.4]),
            theta={"type": "beta", "alpha": 2, "beta": 8},
            library_dist={"type": "poisson", "lambda": 300},
        )
        result = simulate_read_count_multi(
            gene, sample_genotype, np.zeros(20), 30, {"type": "poisson"}, seed=4
        )
        assert result.n_individuals == 30

    def test_mapping_genotype(self, sample_gene: GeneConfiguration) -> None:
        """Test that a mapping with h1 and h2 is accepted."""
        genotype = {"h1": np.zeros((4, 2)), "h2": np.ones((4, 2))}
        result = simulate_read_count_multi(
            sample_gene, genotype, np.zeros(2), 75, {"type": "poisson"}, seed=5
        )
        assert result.n_individuals == 4

    def test_unknown_read_model_raises(
        self, sample_gene: GeneConfiguration, sample_genotype: Genotype
    ) -> None:
        """Test that an unknown y_dist type is rejected."""
        with pytest.raises(ConfigurationError):
            simulate_read_count_multi(
                sample_gene, sample_genotype, np.zeros(20), 75, {"type": "gamma"}, seed=0
            )

    def test_mismatched_betas_raise(
        self, sample_gene: GeneConfiguration, sample_genotype: Genotype
    ) -> None:
        """Test that the effect vector must match the variant count."""
        with pytest.raises(ShapeMismatchError):
            simulate_read_count_multi(
                sample_gene, sample_genotype, np.zeros(19), 75, {"type": "poisson"}, seed=0
            )

    def test_invalid_genotype_raises(self, sample_gene: GeneConfiguration) -> None:
        """Test that an unsupported genotype container is rejected."""
        with pytest.raises(ConfigurationError):
            simulate_read_count_multi(
                sample_gene, [[0, 1]], np.zeros(2), 75, {"type": "poisson"}, seed=0
            )

    def test_effect_shifts_expression(self, sample_gene: GeneConfiguration) -> None:
        """Test that haplotypes carrying a positive effect receive more reads."""
        n = 400
        h1 = np.ones((n, 1))
        h2 = np.zeros((n, 1))
        result = simulate_read_count_multi(
            sample_gene, Genotype(h1, h2), np.array([1.0]), 75, {"type": "poisson"}, seed=8
        )
        obs = result.observed
        assert obs["hap1_count"].mean() > 2 * obs["hap2_count"].mean()
