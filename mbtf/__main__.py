"""Command-line interface for mbtf."""

from __future__ import annotations

import click

from mbtf.cli import RichGroup
from mbtf.cli.commands import auth, import_dashboards, init, validate


@click.group(cls=RichGroup)
@click.version_option(package_name="mbtf")
def cli() -> None:
    """Generate Terraform definitions from Metabase dashboards.

    Config-driven import:

        $ mbtf import

    Or with explicit config:

        $ mbtf import --config mbtf.yml
    """


cli.add_command(import_dashboards)
cli.add_command(init)
cli.add_command(validate)
cli.add_command(auth)


if __name__ == "__main__":
    cli()
