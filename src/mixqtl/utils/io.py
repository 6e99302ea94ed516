"""I/O utilities for mixqtl."""

from __future__ import annotations

import gzip
from pathlib import Path

import pandas as pd

from mixqtl.utils.logging import get_logger
from mixqtl.utils.validators import validate_file_exists

logger = get_logger(__name__)


def _detect_separator(file_path: Path) -> str:
    """Guess the column separator from the suffix or the first line."""
    name = str(file_path).lower()
    if name.endswith(".gz"):
        name = name[:-3]
    if name.endswith(".csv"):
        return ","
    if name.endswith((".tsv", ".txt")):
        return "\t"

    opener = gzip.open if str(file_path).endswith(".gz") else open
    with opener(file_path, "rt", encoding="utf-8") as f:
        first_line = f.readline()
    return "\t" if "\t" in first_line else ","


def read_matrix(
    file_path: str | Path,
    description: str = "Matrix file",
    transpose: bool = False,
    sep: str | None = None,
) -> pd.DataFrame:
    """
    Read a labelled numeric matrix (samples x features) from a delimited file.

    The first column holds the row labels.

    Args:
        file_path: Path to the file.
        description: Description used in error and log messages.
        transpose: Whether to transpose after reading.
        sep: Column separator. If None, auto-detect.

    Returns:
        Matrix as DataFrame.
    """
    file_path = Path(file_path)
    validate_file_exists(file_path, description)

    if sep is None:
        sep = _detect_separator(file_path)

    df = pd.read_csv(file_path, sep=sep, index_col=0)
    if transpose:
        df = df.T

    logger.info(f"Read {description.lower()}: {df.shape[0]} rows x {df.shape[1]} columns")
    return df


def write_table(
    df: pd.DataFrame,
    output_path: str | Path,
    index: bool = True,
    sep: str = "\t",
    compress: bool = False,
) -> Path:
    """
    Write a DataFrame as a delimited table.

    Args:
        df: Table to write.
        output_path: Output file path.
        index: Whether to write the row labels.
        sep: Column separator.
        compress: Whether to gzip output.

    Returns:
        Path to written file.
    """
    output_path = Path(output_path)
    if compress and not str(output_path).endswith(".gz"):
        output_path = Path(str(output_path) + ".gz")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    df.to_csv(output_path, sep=sep, index=index)
    logger.info(f"Wrote {len(df)} rows to {output_path}")
    return output_path


def ensure_directory(path: str | Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path.

    Returns:
        Path object.
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
