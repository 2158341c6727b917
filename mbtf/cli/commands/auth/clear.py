"""Auth clear command for mbtf."""

from __future__ import annotations

import click
from rich.console import Console

from mbtf.cli import RichCommand

console = Console()


@click.command(cls=RichCommand)
@click.argument(
    "credential",
    type=click.Choice(["password", "api-key", "all"]),
    default="all",
)
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def clear(credential: str, force: bool) -> None:
    """Clear stored credentials.

    CREDENTIAL: Which credential to clear (password, api-key, or all)

    Examples:

        # Clear the stored password
        mbtf auth clear password

        # Clear everything
        mbtf auth clear
    """
    from mbtf.credentials import CredentialType, get_credential_store

    store = get_credential_store(console)

    to_clear: list[CredentialType] = []
    if credential in ("password", "all"):
        to_clear.append(CredentialType.METABASE_PASSWORD)
    if credential in ("api-key", "all"):
        to_clear.append(CredentialType.METABASE_API_KEY)

    if not force:
        console.print()
        console.print("This will clear:")
        for credential_type in to_clear:
            console.print(f"  • {credential_type.display_name}")
        console.print()

        if not click.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            return

    for credential_type in to_clear:
        if store.delete(credential_type):
            console.print(f"[green]✓[/green] Cleared {credential_type.display_name}")
        else:
            console.print(f"[dim]○[/dim] {credential_type.display_name} was not set")
