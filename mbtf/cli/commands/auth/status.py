"""Auth status command for mbtf."""

from __future__ import annotations

import os

import click
from rich.console import Console

from mbtf.cli import RichCommand

console = Console()


@click.command(cls=RichCommand)
def status() -> None:
    """Show stored credentials and their status."""
    from mbtf.credentials import CredentialType, get_credential_store

    store = get_credential_store(console)

    console.print()
    console.print("[bold]Credential Status[/bold]")
    console.print()

    for credential in CredentialType:
        label = f"{credential.display_name}:".ljust(18)
        if store.exists(credential):
            console.print(f"[green]✓[/green] {label} Configured")
        else:
            console.print(f"[dim]○[/dim] {label} Not configured")

        if os.environ.get(credential.env_var):
            console.print(
                f"  [yellow]Note: {credential.env_var} env var will override "
                "keychain[/yellow]"
            )

    console.print()
