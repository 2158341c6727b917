"""Tables referenced by cards, and the fields they contain."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mbtf.importer.context import EntityKind
from mbtf.importer.errors import parse_payload
from mbtf.importer.placeholders import finalize_hcl, hcl_string, render_json
from mbtf.importer.records import ImportedDatabase, ImportedTable
from mbtf.metabase.models import Table

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext


def load_table(ctx: ImportContext, table_id: int) -> ImportedTable:
    """Fetch a table with its fields and render a `metabase_table` resource."""
    table = parse_payload(
        Table, ctx.client.get_table_metadata(table_id), f"table {table_id}"
    )
    slug = ctx.allocate_slug(EntityKind.TABLE, table.qualified_name)

    # Tables in databases that are not declared are only looked up by name
    database: ImportedDatabase | None = ctx.cache.get(EntityKind.DATABASE, table.db_id)

    record = ImportedTable(
        table=table,
        slug=slug,
        hcl=render_table(table, slug, database),
    )
    ctx.log(f"Imported table {table_id} as {record.expression}")
    return record


def render_table(
    table: Table,
    slug: str,
    database: ImportedDatabase | None,
) -> str:
    lines = [f'resource "metabase_table" "{slug}" {{']
    if database is not None:
        lines.append(f"  db_id  = {database.expression}")
    if table.schema_name:
        lines.append(f"  schema = {hcl_string(table.schema_name)}")
    lines.append(f"  name   = {hcl_string(table.name)}")

    forced_field_types = {f.name: f.semantic_type for f in table.fields}
    lines.append("")
    lines.append(f"  forced_field_types = {render_json(forced_field_types)}")
    lines.append("}")

    return finalize_hcl("\n".join(lines) + "\n", f"table {table.id}")
