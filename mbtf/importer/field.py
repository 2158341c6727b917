"""Fields referenced by cards and dashboards."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mbtf.importer.errors import parse_payload
from mbtf.importer.records import ImportedField
from mbtf.metabase.models import Field

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext


def load_field(ctx: ImportContext, field_id: int) -> ImportedField:
    """Fetch a field and import its table.

    Fields have no resource of their own. They are referenced through the
    `fields` attribute of the `metabase_table` they belong to.
    """
    field = parse_payload(Field, ctx.client.get_field(field_id), f"field {field_id}")
    table = ctx.import_table(field.table_id)
    return ImportedField(field=field, table=table)
