"""Core import logic for mbtf.

This module contains the main import function: it connects to Metabase,
imports the selected dashboards with everything they reference, and writes
the generated Terraform files.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from mbtf.credentials import get_metabase_api_key, get_metabase_password
from mbtf.importer import (
    ImportContext,
    list_dashboards_to_import,
    plan_files,
    register_collections,
    register_databases,
    write_files,
)
from mbtf.metabase import MetabaseClient

if TYPE_CHECKING:
    from mbtf.config import MbtfConfig, MetabaseConfig

# Module-level console for output
console = Console()


@dataclass
class ImportStatistics:
    """Statistics collected during an import."""

    dashboards: int = 0
    cards: int = 0
    tables: int = 0
    collections: int = 0  # Generated collections only
    files: int = 0


def connect(config: MetabaseConfig) -> MetabaseClient:
    """Create an authenticated Metabase client.

    An API key is used when one is configured (or stored in the keychain).
    Otherwise the client logs in with the username and password, prompting
    for the password when it cannot be found.

    Raises:
        click.ClickException: If no credentials are available
        MetabaseAPIError: If logging in fails
    """
    if config.api_key:
        return MetabaseClient(config.endpoint, api_key=config.api_key)

    if config.username:
        password = config.password or get_metabase_password(
            config.username, prompt_if_missing=True, console=console
        )
        if not password:
            raise click.ClickException(
                f"No password available for {config.username}"
            )
        return MetabaseClient.login(config.endpoint, config.username, password)

    api_key = get_metabase_api_key(console=console)
    if api_key:
        return MetabaseClient(config.endpoint, api_key=api_key)

    raise click.ClickException(
        "No Metabase credentials: set metabase.username or metabase.api_key "
        "in mbtf.yml"
    )


def run_import(
    config: MbtfConfig,
    dry_run: bool = False,
    verbose: bool = False,
    client: MetabaseClient | None = None,
) -> tuple[list[Path], ImportStatistics, Path]:
    """Execute the import process.

    Nothing is written unless every selected dashboard was imported.

    Args:
        config: Parsed MbtfConfig
        dry_run: If True, don't write files
        verbose: If True, show detailed output
        client: Client to use instead of connecting with the configuration

    Returns:
        Tuple of (list of generated file paths, import statistics,
        output path)

    Raises:
        MetabaseAPIError: If a call to the Metabase API fails
        ImporterError: If an entity cannot be imported
    """
    output_path = config.output.output_path
    options = config.output.write_options()
    stats = ImportStatistics()

    console.print(f"[dim]Metabase:[/dim] {config.metabase.endpoint}")
    console.print(f"[dim]Output:[/dim]   {output_path}")
    console.print()

    owns_client = client is None
    if client is None:
        client = connect(config.metabase)

    try:
        ctx = ImportContext(
            client,
            import_missing_collections=config.collections.import_missing,
            console=console,
            verbose=verbose,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Looking up databases and collections...")
            register_databases(
                ctx, [m.to_definition() for m in config.databases.mapping]
            )
            register_collections(
                ctx, [m.to_definition() for m in config.collections.mapping]
            )
            progress.update(task, completed=True)

            task = progress.add_task("Selecting dashboards...", total=None)
            dashboard_ids = list_dashboards_to_import(client, config.dashboard_filter)
            progress.update(task, completed=True)

            task = progress.add_task(
                "Importing dashboards...", total=len(dashboard_ids)
            )
            for dashboard_id in dashboard_ids:
                ctx.import_dashboard(dashboard_id)
                progress.advance(task)
    finally:
        if owns_client:
            client.close()

    stats.dashboards = len(ctx.dashboards)
    stats.cards = len(ctx.cards)
    stats.tables = len(ctx.tables)
    stats.collections = sum(1 for c in ctx.collections if c.hcl is not None)

    if verbose:
        console.print(f"[dim]Dashboards:[/dim] {stats.dashboards}")
        for dashboard in ctx.dashboards:
            console.print(
                f"            [cyan]{dashboard.slug}[/cyan] "
                f"[dim]({len(dashboard.dashboard.dashcards)} dashcards)[/dim]"
            )

    if dry_run:
        written = [file_path for file_path, _ in plan_files(ctx, output_path, options)]
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Writing files...", total=None)
            written = write_files(ctx, output_path, options)
            progress.update(task, completed=True)

    stats.files = len(written)
    return written, stats, output_path
