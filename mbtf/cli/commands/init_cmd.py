"""Init command for mbtf CLI."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from mbtf.cli import RichCommand

console = Console()

CONFIG_TEMPLATE = """\
# mbtf configuration

metabase:
  endpoint: https://metabase.example.com
  username: admin@example.com
  # The password is read from MBTF_METABASE_PASSWORD or the system keychain,
  # and prompted for otherwise.
  # api_key: mb_...  # Use an API key instead of a username

# Databases referenced by cards, defined manually in Terraform
databases:
  mapping: []
  #  - id: 1
  #    resource_name: warehouse

# Collections referenced by cards and dashboards
collections:
  import_missing: false  # Generate metabase_collection resources for others
  mapping: []
  #  - name: Marketing
  #    resource_name: marketing

# Dashboards to import (dashboard_ids overrides the other filters)
dashboard_filter:
  included_collections: []
  #  - id: 12
  #  - name: "^Sales"
  excluded_collections: []
  #  - name: "(?i)archive"
  # dashboard_name: "KPI"
  # dashboard_description: "#terraform"
  # dashboard_ids: [1, 2]

output:
  path: ./
  clear: false
  disable_formatting: false
  file_name_prefix: mb-gen-
  disable_file_name_resource_type: false
"""


@click.command(cls=RichCommand)
def init() -> None:
    """Create a mbtf.yml config file.

    Generates a starter config file in the current directory.

    ## Examples

    Create a new config file:

        $ mbtf init

    Then edit mbtf.yml and run:

        $ mbtf import
    """
    config_path = Path("mbtf.yml")

    if config_path.exists():
        console.print(f"[yellow]{config_path} already exists[/yellow]")
        raise click.ClickException("Config file already exists")

    config_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nEdit the file and run:")
    console.print("  mbtf import")
