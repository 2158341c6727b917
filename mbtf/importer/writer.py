"""Writing of the generated Terraform files."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext
    from mbtf.importer.records import (
        ImportedCard,
        ImportedCollection,
        ImportedDashboard,
        ImportedTable,
    )

    GeneratedRecord = (
        ImportedCollection | ImportedTable | ImportedCard | ImportedDashboard
    )

console = Console()

DEFAULT_FILE_NAME_PREFIX = "mb-gen-"


@dataclass
class WriteOptions:
    """Options controlling how generated files are written.

    Attributes:
        file_name_prefix: Prefix of every generated file name
        disable_file_name_resource_type: Leave the resource type out of file names
        clear_output: Remove previously generated files (matching the prefix)
            before writing
        disable_formatting: Do not run `terraform fmt` after writing
    """

    file_name_prefix: str = DEFAULT_FILE_NAME_PREFIX
    disable_file_name_resource_type: bool = False
    clear_output: bool = False
    disable_formatting: bool = False

    @property
    def prefix(self) -> str:
        return self.file_name_prefix or DEFAULT_FILE_NAME_PREFIX


def make_file_path(path: Path, kind: str, slug: str, options: WriteOptions) -> Path:
    """Path of the file defining a resource, e.g. `mb-gen-card-sales-by-month.tf`."""
    resource_prefix = "" if options.disable_file_name_resource_type else f"{kind}-"
    slug_with_dashes = slug.replace("_", "-")
    return path / f"{options.prefix}{resource_prefix}{slug_with_dashes}.tf"


def clear_output(path: Path, options: WriteOptions) -> list[Path]:
    """Remove previously generated files from the output directory."""
    removed = sorted(path.glob(f"{options.prefix}*.tf"))
    for file_path in removed:
        file_path.unlink()
    return removed


def format_files(path: Path) -> bool:
    """Run `terraform fmt` in the output directory.

    Returns:
        False if terraform is not installed, in which case files are left as
        they are

    Raises:
        subprocess.CalledProcessError: If formatting fails
    """
    try:
        subprocess.run(
            ["terraform", "fmt"],
            cwd=path,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        console.print(
            "[yellow]Files were not formatted as terraform could not be found "
            "in PATH[/yellow]"
        )
        return False
    return True


def plan_files(
    ctx: ImportContext,
    path: Path,
    options: WriteOptions,
) -> list[tuple[Path, GeneratedRecord]]:
    """Pair every generated resource with the path of its file.

    Only entities with a rendered definition get a file: imported
    collections, tables, cards and dashboards. Declared databases and
    collections are defined elsewhere, and fields belong to their table.
    """
    planned = []
    for records in (ctx.collections, ctx.tables, ctx.cards, ctx.dashboards):
        for record in sorted(records, key=lambda r: r.slug):
            if record.hcl is None:
                continue
            planned.append(
                (make_file_path(path, record.kind, record.slug, options), record)
            )
    return planned


def write_files(ctx: ImportContext, path: Path, options: WriteOptions) -> list[Path]:
    """Write one file per generated resource.

    Args:
        ctx: Context of a completed import
        path: Output directory, created if needed
        options: Write options

    Returns:
        Paths of the written files
    """
    path.mkdir(parents=True, exist_ok=True)

    if options.clear_output:
        clear_output(path, options)

    written = []
    for file_path, record in plan_files(ctx, path, options):
        file_path.write_text(record.hcl, encoding="utf-8")
        written.append(file_path)

    if written and not options.disable_formatting:
        format_files(path)

    return written
