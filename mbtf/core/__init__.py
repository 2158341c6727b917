"""Core import functionality for mbtf.

This module contains the main import logic extracted from the CLI,
allowing programmatic access to the import process.
"""

from mbtf.core.runner import ImportStatistics, connect, run_import

__all__ = [
    "ImportStatistics",
    "connect",
    "run_import",
]
