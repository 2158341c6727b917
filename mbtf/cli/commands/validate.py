"""Validate command for mbtf CLI."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from mbtf.cli import RichCommand
from mbtf.cli.commands._config import load_command_config

console = Console()


@click.command(cls=RichCommand)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to mbtf.yml config file",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show full exception stacktraces for troubleshooting",
)
def validate(config: Path | None, debug: bool) -> None:
    """Validate the configuration without calling Metabase.

    Checks that:
    - mbtf.yml is valid
    - Resource names of declared databases and collections are unique
    - Credentials are available

    ## Examples

        $ mbtf validate

        $ mbtf validate && mbtf import
    """
    from mbtf.credentials import CredentialType, get_credential_store

    cfg, config_path = load_command_config(config, console, debug)
    console.print(f"[green]Config valid:[/green] {config_path}")

    for section, mappings in (
        ("databases", cfg.databases.mapping),
        ("collections", cfg.collections.mapping),
    ):
        seen: set[str] = set()
        for mapping in mappings:
            if mapping.resource_name in seen:
                console.print(
                    f"[red]Duplicate resource name in {section}:[/red] "
                    f"{mapping.resource_name}"
                )
                raise click.ClickException(
                    f"Resource name '{mapping.resource_name}' is declared twice"
                )
            seen.add(mapping.resource_name)
        console.print(f"[green]{section.title()} valid:[/green] {len(mappings)} declared")

    filters = cfg.dashboard_filter
    if filters.dashboard_ids:
        console.print(
            f"[green]Dashboards:[/green] {len(filters.dashboard_ids)} selected by ID"
        )
    else:
        console.print(
            f"[green]Dashboards:[/green] {len(filters.included_collections)} "
            f"included, {len(filters.excluded_collections)} excluded collection "
            "filters"
        )

    store = get_credential_store(console)
    metabase = cfg.metabase
    # Same order as `mbtf import`
    if metabase.api_key:
        console.print("[green]Credentials:[/green] API key")
    elif metabase.username:
        if metabase.password or store.exists(CredentialType.METABASE_PASSWORD):
            console.print(f"[green]Credentials:[/green] {metabase.username}")
        else:
            console.print(
                f"[yellow]Credentials:[/yellow] {metabase.username} "
                "(password will be prompted for)"
            )
    elif store.exists(CredentialType.METABASE_API_KEY):
        console.print("[green]Credentials:[/green] API key (stored)")
    else:
        console.print("[red]No credentials:[/red] set metabase.username or api_key")
        raise click.ClickException("No Metabase credentials configured")

    console.print("\n[bold green]All checks passed[/bold green]")
