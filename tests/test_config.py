"""Tests for configuration management."""

from pathlib import Path

import pytest

from mixqtl.utils.config import (
    Config,
    EffectSettings,
    GeneSettings,
    PipelineConfig,
    ReadSettings,
    load_config,
)


class TestGeneSettings:
    """Tests for GeneSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        settings = GeneSettings()
        assert settings.gene_length == 1000
        assert settings.n_snps == 5
        assert settings.theta["type"] == "beta"
        assert settings.library_dist == {"type": "poisson", "lambda": 500.0}

    def test_defaults_are_not_shared(self) -> None:
        """Test that mutable defaults are independent per instance."""
        first = GeneSettings()
        second = GeneSettings()
        first.theta["alpha"] = 10.0
        assert second.theta["alpha"] == 2.0


class TestEffectAndReadSettings:
    """Tests for EffectSettings and ReadSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        assert EffectSettings().genetic_var_range == [0.015, 0.075]
        assert EffectSettings().ncausal_range == [1, 3]
        assert ReadSettings().read_length == 75
        assert ReadSettings().y_dist == {"type": "poisson"}


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = PipelineConfig()
        assert config.output_dir == "results"
        assert config.random_seed == 42
        assert config.log_dir is None
        assert config.scan.fdr_method == "bh"


class TestConfig:
    """Tests for Config class."""

    def test_default_config(self) -> None:
        """Test creating default configuration."""
        config = Config()
        assert config.gene.gene_length == 1000
        assert config.genotype.n_individuals == 100
        assert config.reads.read_length == 75
        assert config.validate() == []

    def test_load_config(self, temp_dir: Path) -> None:
        """Test loading configuration from YAML file."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text(
            """
output_dir: /custom/output
random_seed: 7
gene:
  gene_length: 400
  theta:
    type: lognormal
    k: -2.0
    sigma: 0.3
reads:
  y_dist:
    type: negbinom
    size_factor: 2.0
    prob: 0.5
  unknown_key: ignored
"""
        )

        config = Config(config_path)

        assert config.pipeline.output_dir == "/custom/output"
        assert config.pipeline.random_seed == 7
        assert config.gene.gene_length == 400
        assert config.gene.theta["type"] == "lognormal"
        assert config.reads.y_dist["type"] == "negbinom"
        assert config.validate() == []

    def test_load_missing_file_raises(self) -> None:
        """Test loading a file that does not exist."""
        with pytest.raises(FileNotFoundError):
            Config("/nonexistent/config.yaml")

    def test_load_empty_file_raises(self, temp_dir: Path) -> None:
        """Test loading an empty file."""
        config_path = temp_dir / "empty.yaml"
        config_path.write_text("")
        with pytest.raises(ValueError):
            Config(config_path)

    def test_save_config(self, temp_dir: Path) -> None:
        """Test saving configuration to YAML file."""
        config = Config()
        config.genotype.n_variants = 12
        config_path = temp_dir / "saved_config.yaml"

        config.save(config_path)

        assert config_path.exists()
        loaded = Config(config_path)
        assert loaded.genotype.n_variants == 12
        assert loaded.gene.library_dist == config.gene.library_dist

    def test_validate_unknown_distribution(self) -> None:
        """Test that an unknown read-count model is reported."""
        config = Config()
        config.reads.y_dist = {"type": "gamma"}

        errors = config.validate()

        assert len(errors) == 1
        assert errors[0].startswith("reads.y_dist")

    def test_validate_non_numeric_distribution_parameter(self) -> None:
        """Test that a parameter given as text is reported, not raised."""
        config = Config()
        config.reads.y_dist = {"type": "negbinom", "size_factor": 2, "prob": "2/3"}

        errors = config.validate()

        assert len(errors) == 1
        assert errors[0].startswith("reads.y_dist")
        assert "prob" in errors[0]

    def test_validate_invalid_values(self) -> None:
        """Test validation of out-of-range values."""
        config = Config()
        config.reads.read_length = 0
        config.scan.fdr_threshold = 1.5
        config.scan.fdr_method = "holm"
        config.effects.ncausal_range = [3, 1]
        config.genotype.missing_rate = 1.0

        errors = config.validate()

        assert len(errors) == 5
        assert any("read_length" in e for e in errors)
        assert any("fdr_method" in e for e in errors)

    def test_validate_too_many_causals(self) -> None:
        """Test that more causals than variants is reported."""
        config = Config()
        config.genotype.n_variants = 2
        errors = config.validate()
        assert any("ncausal_range" in e for e in errors)

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test creating configuration from environment variables."""
        monkeypatch.setenv("MIXQTL_OUTPUT_DIR", "/env/output")
        monkeypatch.setenv("MIXQTL_RANDOM_SEED", "123")
        monkeypatch.setenv("MIXQTL_LOG_DIR", "/env/logs")
        monkeypatch.setenv("MIXQTL_N_INDIVIDUALS", "250")
        monkeypatch.setenv("MIXQTL_FDR_THRESHOLD", "0.1")

        config = Config.from_env()

        assert config.pipeline.output_dir == "/env/output"
        assert config.pipeline.random_seed == 123
        assert config.pipeline.log_dir == "/env/logs"
        assert config.genotype.n_individuals == 250
        assert config.scan.fdr_threshold == 0.1


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_default(self) -> None:
        """Test loading default configuration."""
        config = load_config()
        assert isinstance(config, Config)

    def test_load_from_file(self, temp_dir: Path) -> None:
        """Test loading configuration from file."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("random_seed: 99\n")

        config = load_config(config_path)
        assert config.pipeline.random_seed == 99
