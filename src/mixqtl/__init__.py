"""
mixqtl.

Read-count simulation and batched regression utilities for cis-QTL mapping
that combines total and allele-specific RNA-seq counts.
"""

from mixqtl._version import __version__

__all__ = ["__version__"]
