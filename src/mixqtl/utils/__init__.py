"""Utility modules for mixqtl."""

from mixqtl.utils.config import Config, load_config
from mixqtl.utils.io import ensure_directory, read_matrix, write_table
from mixqtl.utils.logging import get_logger, setup_logging
from mixqtl.utils.validators import (
    ConfigurationError,
    SamplingInfeasibilityError,
    ShapeMismatchError,
    ValidationError,
)

__all__ = [
    "Config",
    "load_config",
    "ensure_directory",
    "read_matrix",
    "write_table",
    "get_logger",
    "setup_logging",
    "ConfigurationError",
    "SamplingInfeasibilityError",
    "ShapeMismatchError",
    "ValidationError",
]
