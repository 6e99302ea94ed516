"""Logging utilities for mixqtl."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logging import Logger

# Package logger name
LOGGER_NAME = "mixqtl"

# Format strings
CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        # Color a copy so file handlers sharing the record see the plain name
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | Path | None = None,
    log_dir: str | Path | None = None,
    use_colors: bool = True,
    quiet: bool = False,
) -> Logger:
    """
    Set up the package logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Specific log file path. Takes precedence over log_dir.
        log_dir: Directory for a timestamped log file. If both are None,
            nothing is written to disk.
        use_colors: Whether to use colored console output.
        quiet: If True, suppress console output.

    Returns:
        Configured logger instance.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors))
        logger.addHandler(console_handler)

    if log_dir is not None or log_file is not None:
        if log_file is not None:
            file_path = Path(log_file)
        else:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            file_path = Path(log_dir) / f"mixqtl_{timestamp}.log"

        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {file_path}")

    logger.propagate = False

    return logger


def get_logger(name: str | None = None) -> Logger:
    """
    Get a logger under the package namespace.

    Args:
        name: Module name, usually ``__name__``. If None, returns the
            package logger.

    Returns:
        Logger instance.
    """
    if name is None or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def log_step(step_name: str, logger: Logger | None = None) -> None:
    """Log a pipeline step between separator lines."""
    if logger is None:
        logger = get_logger()

    separator = "=" * 60
    logger.info(separator)
    logger.info(f"  {step_name}")
    logger.info(separator)


def log_summary(
    title: str,
    items: dict[str, str | int | float],
    logger: Logger | None = None,
) -> None:
    """
    Log a summary of key-value pairs.

    Args:
        title: Summary title.
        items: Dictionary of items to log.
        logger: Logger to use. If None, uses package logger.
    """
    if logger is None:
        logger = get_logger()

    logger.info(f"{title}:")
    logger.info("-" * 40)
    for key, value in items.items():
        logger.info(f"  {key}: {value}")
    logger.info("-" * 40)
