"""Databases referenced by cards.

Databases are not generated. They hold connection details and credentials, so
they are defined manually in Terraform, and declared in the importer
configuration with the name of their Terraform resource.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mbtf.importer.context import EntityKind
from mbtf.importer.errors import DefinitionLookupError, parse_payload
from mbtf.importer.records import ImportedDatabase
from mbtf.metabase.errors import MetabaseAPIError
from mbtf.metabase.models import Database

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext


@dataclass(frozen=True)
class ExistingDatabaseDefinition:
    """A database defined manually in Terraform.

    Attributes:
        resource_name: Name of the `metabase_database` resource
        id: ID of the database, if known
        name: Name of the database, used when the ID is not given
    """

    resource_name: str
    id: int | None = None
    name: str | None = None


def load_database(ctx: ImportContext, database_id: int) -> ImportedDatabase:
    """Only declared databases can be referenced."""
    raise DefinitionLookupError(
        f"database {database_id} has not been defined in the importer configuration"
    )


def register_databases(
    ctx: ImportContext,
    definitions: Iterable[ExistingDatabaseDefinition],
) -> list[ImportedDatabase]:
    """Look up declared databases and make them available to cards.

    Databases are looked up by ID when one is given, and by name otherwise.
    The database list is fetched at most once.

    Raises:
        DefinitionLookupError: If a database cannot be found
        DuplicateDefinitionError: If a database is declared twice
    """
    database_list: list[dict[str, Any]] | None = None
    records = []

    for definition in definitions:
        if definition.id is not None:
            raw = _get_database(ctx, definition.id)
        elif definition.name is not None:
            if database_list is None:
                database_list = ctx.client.list_databases()
            raw = _find_by_name(database_list, definition.name)
        else:
            raise DefinitionLookupError(
                "One of id or name should be specified to declare a database"
            )

        database = parse_payload(Database, raw, "database")
        ctx.claim_slug(EntityKind.DATABASE, definition.resource_name)
        record = ImportedDatabase(database=database, slug=definition.resource_name)
        ctx.cache.register(EntityKind.DATABASE, database.id, record)
        ctx.log(f"Declared database {database.id} as {record.expression}")
        records.append(record)

    return records


def _get_database(ctx: ImportContext, database_id: int) -> dict[str, Any]:
    try:
        return ctx.client.get_database(database_id)
    except MetabaseAPIError as e:
        if e.status_code == 404:
            raise DefinitionLookupError(
                f"Unable to find database with id {database_id}"
            ) from e
        raise


def _find_by_name(databases: list[dict[str, Any]], name: str) -> dict[str, Any]:
    matches = [db for db in databases if db.get("name") == name]
    if not matches:
        raise DefinitionLookupError(f"Unable to find database with name {name!r}")
    if len(matches) > 1:
        ids = ", ".join(str(db.get("id")) for db in matches)
        raise DefinitionLookupError(
            f"Several databases are named {name!r} (ids {ids}), declare one by id"
        )
    return matches[0]
