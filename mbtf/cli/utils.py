"""CLI utility functions for mbtf."""

from __future__ import annotations

from pathlib import Path

from rich.tree import Tree

# Color of generated files in trees, by resource type in the file name
KIND_STYLES = {
    "collection": "blue",
    "table": "magenta",
    "card": "green",
    "dashboard": "yellow",
}


def _style_for(file_name: str, prefix: str) -> str:
    stem = file_name[len(prefix) :] if file_name.startswith(prefix) else file_name
    for kind, style in KIND_STYLES.items():
        if stem.startswith(f"{kind}-"):
            return style
    return "green"


def build_file_tree(files: list[Path], output_path: Path, prefix: str = "") -> Tree:
    """Build a Rich Tree from generated file paths.

    Args:
        files: List of file paths to display
        output_path: Output directory, the root of the tree
        prefix: File name prefix of generated files

    Returns:
        Rich Tree object for display
    """
    name = output_path.resolve().name or str(output_path)
    tree = Tree(f"[bold]{name}/[/bold]")

    for f in sorted(files):
        try:
            rel = f.relative_to(output_path)
        except ValueError:
            continue

        style = _style_for(rel.name, prefix)
        tree.add(f"[{style}]{rel}[/{style}]")

    return tree
