"""CLI utilities for mbtf.

The error panel and Click command classes shared by every command.
"""

from __future__ import annotations

from mbtf.cli.formatting import format_error
from mbtf.cli.help_formatter import RichCommand, RichGroup

__all__ = [
    "format_error",
    "RichCommand",
    "RichGroup",
]
