"""Configuration loading shared by commands."""

from __future__ import annotations

import traceback
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console

from mbtf.config import MbtfConfig, find_config, has_env_config, load_config

STARTER_HINT = """
[dim]metabase:
  endpoint: https://metabase.example.com
  username: admin@example.com

dashboard_filter:
  dashboard_ids: [1][/dim]"""

# Shown in place of a file name when no mbtf.yml exists
ENV_SOURCE = "environment (MBTF_* variables)"


def load_command_config(
    config: Path | None,
    console: Console,
    debug: bool,
) -> tuple[MbtfConfig, Path | str]:
    """Load the configuration given with --config, or search for mbtf.yml.

    Without a file, MBTF_* environment variables can hold the whole
    configuration.

    Returns:
        The configuration, and the file it was read from (or ENV_SOURCE)

    Raises:
        click.ClickException: If the file is missing or invalid
    """
    try:
        if config:
            config_path = config
        else:
            found_config = find_config()
            if found_config is None:
                if has_env_config():
                    return load_config(), ENV_SOURCE
                console.print("[red]No mbtf.yml found[/red]")
                console.print("\nCreate one with 'mbtf init', or write a mbtf.yml:")
                console.print(STARTER_HINT)
                console.print(
                    "\n[dim]Or set MBTF_METABASE_ENDPOINT and other MBTF_* "
                    "variables[/dim]"
                )
                raise click.ClickException("Config file not found")
            config_path = found_config
        return load_config(config_path), config_path
    except FileNotFoundError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]Config file not found:[/red] {e}")
        raise click.ClickException(str(e))
    except yaml.YAMLError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]YAML parsing error:[/red] {e}")
        raise click.ClickException(str(e))
    except (ValidationError, ValueError) as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]Config validation error:[/red] {e}")
        raise click.ClickException(str(e))
