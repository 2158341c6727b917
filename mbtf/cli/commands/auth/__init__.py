"""Auth command group for mbtf.

Manages the Metabase credentials stored in the system keychain.
"""

from __future__ import annotations

import click
from rich.console import Console

from mbtf.cli import RichGroup
from mbtf.cli.commands.auth.clear import clear
from mbtf.cli.commands.auth.set_key import set_key
from mbtf.cli.commands.auth.status import status
from mbtf.cli.commands.auth.test_cmd import test

console = Console()


@click.group(cls=RichGroup, invoke_without_command=True)
@click.pass_context
def auth(ctx: click.Context) -> None:
    """Manage Metabase credentials.

    When called without a subcommand, displays credential status and
    available commands.

    ## Quick Examples

    Check credential status:

        $ mbtf auth

    Store an API key:

        $ mbtf auth set-key

    Test the credentials against the configured instance:

        $ mbtf auth test
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(status)
        console.print()
        console.print("[dim]Available commands:[/dim]")
        console.print(ctx.get_help())


auth.add_command(status)
auth.add_command(test)
auth.add_command(clear)
auth.add_command(set_key)

__all__ = [
    "auth",
    "clear",
    "set_key",
    "status",
    "test",
]
