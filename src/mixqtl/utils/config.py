"""Configuration management for mixqtl."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from mixqtl.utils.validators import ConfigurationError


@dataclass
class GeneSettings:
    """Settings for the simulated gene."""

    gene_length: int = 1000
    n_snps: int = 5
    snp_maf_range: list[float] = field(default_factory=lambda: [0.05, 0.5])
    theta: dict[str, Any] = field(
        default_factory=lambda: {"type": "beta", "alpha": 2.0, "beta": 8.0}
    )
    library_dist: dict[str, Any] = field(
        default_factory=lambda: {"type": "poisson", "lambda": 500.0}
    )


@dataclass
class GenotypeSettings:
    """Settings for simulated phased genotypes."""

    n_individuals: int = 100
    n_variants: int = 50
    maf_range: list[float] = field(default_factory=lambda: [0.05, 0.5])
    missing_rate: float = 0.0


@dataclass
class EffectSettings:
    """Settings for the causal effect vector."""

    genetic_var_range: list[float] = field(default_factory=lambda: [0.015, 0.075])
    ncausal_range: list[int] = field(default_factory=lambda: [1, 3])


@dataclass
class ReadSettings:
    """Settings for read sampling."""

    read_length: int = 75
    y_dist: dict[str, Any] = field(default_factory=lambda: {"type": "poisson"})


@dataclass
class ScanSettings:
    """Settings for association scans."""

    fdr_threshold: float = 0.05
    fdr_method: str = "bh"


@dataclass
class PipelineConfig:
    """Main configuration."""

    # Output paths
    output_dir: str = "results"
    # Directory for timestamped log files, none written when unset
    log_dir: Optional[str] = None

    # Sub-configurations
    gene: GeneSettings = field(default_factory=GeneSettings)
    genotype: GenotypeSettings = field(default_factory=GenotypeSettings)
    effects: EffectSettings = field(default_factory=EffectSettings)
    reads: ReadSettings = field(default_factory=ReadSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)

    # Runtime settings
    random_seed: int = 42


class Config:
    """Configuration manager for mixqtl."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file.
                        If None, uses default configuration.
        """
        self._config = PipelineConfig()
        if config_path is not None:
            self.load(config_path)

    @property
    def pipeline(self) -> PipelineConfig:
        return self._config

    @property
    def gene(self) -> GeneSettings:
        return self._config.gene

    @property
    def genotype(self) -> GenotypeSettings:
        return self._config.genotype

    @property
    def effects(self) -> EffectSettings:
        return self._config.effects

    @property
    def reads(self) -> ReadSettings:
        return self._config.reads

    @property
    def scan(self) -> ScanSettings:
        return self._config.scan

    def load(self, config_path: str | Path) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the configuration file.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ValueError: If the configuration file is empty.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            raise ValueError(f"Empty configuration file: {config_path}")

        self._update_config(data)

    def _update_config(self, data: dict[str, Any]) -> None:
        """Update configuration from dictionary, ignoring unknown keys."""
        for key, value in data.items():
            if not hasattr(self._config, key):
                continue
            current = getattr(self._config, key)
            if is_dataclass(current) and isinstance(value, dict):
                known = {f.name for f in fields(current)}
                for sub_key, sub_value in value.items():
                    if sub_key in known:
                        setattr(current, sub_key, sub_value)
            else:
                setattr(self._config, key, value)

    def save(self, config_path: str | Path) -> None:
        """
        Save current configuration to a YAML file.

        Args:
            config_path: Path to save the configuration.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(self._to_dict(), f, default_flow_style=False, sort_keys=False)

    def _to_dict(self) -> dict[str, Any]:
        return asdict(self._config)

    def validate(self) -> list[str]:
        """
        Validate the configuration, including the distribution specifications.

        Returns:
            List of validation error messages. Empty if valid.
        """
        from mixqtl.simulation.distributions import (
            parse_library_dist,
            parse_read_dist,
            parse_theta,
        )

        errors = []

        for name, parser, spec in (
            ("gene.theta", parse_theta, self.gene.theta),
            ("gene.library_dist", parse_library_dist, self.gene.library_dist),
            ("reads.y_dist", parse_read_dist, self.reads.y_dist),
        ):
            try:
                parser(spec)
            except ConfigurationError as e:
                errors.append(f"{name}: {e}")

        if self.gene.gene_length <= 0:
            errors.append("gene_length must be positive")

        if not 0 <= self.gene.n_snps <= self.gene.gene_length:
            errors.append("n_snps must be between 0 and gene_length")

        if self.reads.read_length <= 0:
            errors.append("read_length must be positive")

        if self.genotype.n_individuals <= 0 or self.genotype.n_variants <= 0:
            errors.append("genotype dimensions must be positive")

        if not 0 <= self.genotype.missing_rate < 1:
            errors.append("missing_rate must be in [0, 1)")

        low, high = self.effects.ncausal_range
        if low < 0 or low > high:
            errors.append("ncausal_range must be a non-negative increasing pair")
        elif high > self.genotype.n_variants:
            errors.append("ncausal_range exceeds the number of variants")

        low, high = self.effects.genetic_var_range
        if low < 0 or low > high:
            errors.append("genetic_var_range must be a non-negative increasing pair")

        if not 0 < self.scan.fdr_threshold <= 1:
            errors.append("fdr_threshold must be between 0 and 1")

        if self.scan.fdr_method not in ("bh", "bonferroni", "storey"):
            errors.append("fdr_method must be one of bh, bonferroni, storey")

        return errors

    @classmethod
    def from_env(cls) -> Config:
        """
        Create configuration from environment variables.

        Environment variables should be prefixed with MIXQTL_.

        Returns:
            Config instance with values from environment.
        """
        config = cls()

        env_mappings = {
            "MIXQTL_OUTPUT_DIR": ("output_dir", str),
            "MIXQTL_RANDOM_SEED": ("random_seed", int),
            "MIXQTL_LOG_DIR": ("log_dir", str),
            "MIXQTL_N_INDIVIDUALS": ("genotype.n_individuals", int),
            "MIXQTL_N_VARIANTS": ("genotype.n_variants", int),
            "MIXQTL_READ_LENGTH": ("reads.read_length", int),
            "MIXQTL_FDR_THRESHOLD": ("scan.fdr_threshold", float),
        }

        for env_var, (attr_path, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                parts = attr_path.split(".")
                if len(parts) == 1:
                    setattr(config._config, parts[0], converter(value))
                else:
                    sub_config = getattr(config._config, parts[0])
                    setattr(sub_config, parts[1], converter(value))

        return config


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Loaded or default configuration.
    """
    return Config(config_path)
