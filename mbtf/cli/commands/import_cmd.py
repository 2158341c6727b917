"""Import command for mbtf CLI."""

from __future__ import annotations

import subprocess
import traceback
from pathlib import Path

import click
from rich.console import Console

from mbtf.cli import RichCommand, format_error
from mbtf.cli.commands._config import load_command_config
from mbtf.cli.utils import build_file_tree
from mbtf.core.runner import run_import
from mbtf.importer import ImporterError
from mbtf.metabase import MetabaseAPIError

console = Console()


@click.command(cls=RichCommand, name="import")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to mbtf.yml config file (auto-detected if not specified)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Import everything but list the files instead of writing them",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show detailed output",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show full exception stacktraces for troubleshooting",
)
def import_dashboards(
    config: Path | None,
    dry_run: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Generate Terraform definitions from Metabase dashboards.

    Reads configuration from mbtf.yml, selects dashboards, and writes one
    file per generated resource:
    - Dashboards (metabase_dashboard)
    - Cards used by the dashboards (metabase_card)
    - Tables referenced by the cards (metabase_table)
    - Collections, when collections.import_missing is set

    Examples:

        # Import using mbtf.yml in current directory
        mbtf import

        # Preview without writing files
        mbtf import --dry-run

        # Use specific config file
        mbtf import --config ./configs/mbtf.yml
    """
    cfg, config_path = load_command_config(config, console, debug)

    console.print()
    console.print("[bold]mbtf[/bold]", highlight=False)
    console.print()
    console.print(f"[dim]Config:[/dim]   {config_path}")

    if dry_run:
        console.print("[yellow]Dry run mode[/yellow]")
        console.print()

    try:
        files, stats, output_path = run_import(cfg, dry_run=dry_run, verbose=verbose)
    except MetabaseAPIError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(format_error(str(e), "Check metabase.endpoint and credentials"))
        raise click.ClickException(str(e))
    except ImporterError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(
            format_error(
                str(e),
                "Declare databases and collections in mbtf.yml, or set "
                "collections.import_missing",
            )
        )
        raise click.ClickException(str(e))
    except subprocess.CalledProcessError as e:
        if debug:
            console.print(traceback.format_exc())
        console.print(f"[red]terraform fmt failed:[/red] {e.stderr or e}")
        raise click.ClickException("terraform fmt failed")

    action = "Would generate" if dry_run else "Generated"
    console.print(
        f"\n[bold green]{action} {stats.files} files[/bold green] "
        f"[dim]({stats.dashboards} dashboards, {stats.cards} cards, "
        f"{stats.tables} tables, {stats.collections} collections)[/dim]"
    )

    if verbose or dry_run:
        console.print()
        tree = build_file_tree(files, output_path, cfg.output.write_options().prefix)
        console.print(tree)
