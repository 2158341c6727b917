"""Rich panel for error messages."""

from __future__ import annotations

from rich.panel import Panel

PANEL_WIDTH = 78


def format_error(message: str, context: str | None = None) -> Panel:
    """Create formatted error panel.

    Args:
        message: Error message
        context: Optional hint on how to fix the error

    Returns:
        Panel with error formatting
    """
    content = f"[bold red]{message}[/bold red]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"

    return Panel(
        content,
        title="[bold red]Error[/bold red]",
        border_style="red",
        width=PANEL_WIDTH,
        expand=False,
    )
