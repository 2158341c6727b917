"""Auth set-key command for mbtf."""

from __future__ import annotations

import click
from rich.console import Console

from mbtf.cli import RichCommand

console = Console()


@click.command(cls=RichCommand, name="set-key")
def set_key() -> None:
    """Store a Metabase API key in the system keychain.

    API keys are created by admins in Metabase (Settings > Admin > API keys).
    A stored key is used when mbtf.yml sets neither a username nor an API key.
    """
    from mbtf.credentials import CredentialType, get_credential_store

    store = get_credential_store(console)
    api_key = click.prompt("Metabase API key", hide_input=True)

    if not store.set(CredentialType.METABASE_API_KEY, api_key):
        console.print("[red]✗[/red] Keychain unavailable")
        console.print(
            f"[dim]Set {CredentialType.METABASE_API_KEY.env_var} instead[/dim]"
        )
        raise click.ClickException("Could not store the API key")

    console.print("[green]✓[/green] Stored Metabase API key")
