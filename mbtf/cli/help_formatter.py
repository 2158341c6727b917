"""Click command classes with wider help output.

Help is rendered by Click itself, only widened so that option descriptions and
examples are not wrapped too early.
"""

from __future__ import annotations

import click

HELP_WIDTH = 88


def _wide_help(command: click.Command, ctx: click.Context) -> str:
    formatter = click.HelpFormatter(width=HELP_WIDTH)
    command.format_help(ctx, formatter)
    return formatter.getvalue()


class RichCommand(click.Command):
    """Click command rendering help at a readable width."""

    def get_help(self, ctx: click.Context) -> str:
        return _wide_help(self, ctx)


class RichGroup(click.Group):
    """Click group rendering help at a readable width."""

    def get_help(self, ctx: click.Context) -> str:
        return _wide_help(self, ctx)
