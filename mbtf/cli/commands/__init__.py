"""CLI commands for mbtf.

Commands are registered by importing them in __main__.py.
"""

from __future__ import annotations

from mbtf.cli.commands.auth import auth
from mbtf.cli.commands.import_cmd import import_dashboards
from mbtf.cli.commands.init_cmd import init
from mbtf.cli.commands.validate import validate

__all__ = [
    "auth",
    "import_dashboards",
    "init",
    "validate",
]
