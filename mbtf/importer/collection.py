"""Collections referenced by cards and dashboards.

Collections are usually defined manually in Terraform and declared in the
importer configuration. When importing missing collections is enabled, a
collection that is not declared gets a generated `metabase_collection`
resource instead, along with its ancestors.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mbtf.importer.context import EntityKind
from mbtf.importer.errors import DefinitionLookupError, parse_payload
from mbtf.importer.placeholders import hcl_string
from mbtf.importer.records import ImportedCollection
from mbtf.metabase.constants import ROOT_COLLECTION_ID
from mbtf.metabase.errors import MetabaseAPIError
from mbtf.metabase.models import Collection

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext


@dataclass(frozen=True)
class ExistingCollectionDefinition:
    """A collection defined manually in Terraform.

    Attributes:
        resource_name: Name of the `metabase_collection` resource
        id: ID of the collection (`root` for the root collection), if known
        name: Name of the collection, used when the ID is not given
    """

    resource_name: str
    id: int | str | None = None
    name: str | None = None


def load_collection(ctx: ImportContext, collection_key: str) -> ImportedCollection:
    """Import a collection that was not declared.

    Args:
        ctx: Import context
        collection_key: ID of the collection, as a string

    Raises:
        DefinitionLookupError: If importing missing collections is disabled,
            or for the root collection, which cannot be a resource
    """
    if not ctx.import_missing_collections or collection_key == ROOT_COLLECTION_ID:
        raise DefinitionLookupError(
            f"collection {collection_key} has not been defined in the importer "
            "configuration"
        )

    collection = parse_payload(
        Collection,
        ctx.client.get_collection(collection_key),
        f"collection {collection_key}",
    )

    parent = None
    if collection.parent_id is not None:
        parent = ctx.import_collection(collection.parent_id)

    slug = ctx.allocate_slug(EntityKind.COLLECTION, collection.name)
    record = ImportedCollection(
        collection=collection,
        slug=slug,
        hcl=render_collection(collection, slug, parent),
    )
    ctx.log(f"Imported collection {collection_key} as {record.resource_reference}")
    return record


def render_collection(
    collection: Collection,
    slug: str,
    parent: ImportedCollection | None,
) -> str:
    description = (
        hcl_string(collection.description) if collection.description else "null"
    )
    parent_id = parent.expression if parent else "null"

    return (
        f'resource "metabase_collection" "{slug}" {{\n'
        f"  name        = {hcl_string(collection.name)}\n"
        f"  description = {description}\n"
        f"  parent_id   = {parent_id}\n"
        "}\n"
    )


def register_collections(
    ctx: ImportContext,
    definitions: Iterable[ExistingCollectionDefinition],
) -> list[ImportedCollection]:
    """Look up declared collections and make them available to references.

    Collections are looked up by ID when one is given, and by name otherwise.
    The collection list is fetched at most once.

    Raises:
        DefinitionLookupError: If a collection cannot be found
        DuplicateDefinitionError: If a collection is declared twice
    """
    collection_list: list[dict[str, Any]] | None = None
    records = []

    for definition in definitions:
        if definition.id is not None:
            raw = _get_collection(ctx, definition.id)
        elif definition.name is not None:
            if collection_list is None:
                collection_list = ctx.client.list_collections()
            raw = _find_by_name(collection_list, definition.name)
        else:
            raise DefinitionLookupError(
                "One of id or name should be specified to declare a collection"
            )

        collection = parse_payload(Collection, raw, "collection")
        ctx.claim_slug(EntityKind.COLLECTION, definition.resource_name)
        record = ImportedCollection(
            collection=collection, slug=definition.resource_name
        )
        ctx.cache.register(EntityKind.COLLECTION, collection.key, record)
        ctx.log(f"Declared collection {collection.key} as {record.resource_reference}")
        records.append(record)

    return records


def _get_collection(ctx: ImportContext, collection_id: int | str) -> dict[str, Any]:
    try:
        return ctx.client.get_collection(collection_id)
    except MetabaseAPIError as e:
        if e.status_code == 404:
            raise DefinitionLookupError(
                f"Unable to find collection with id {collection_id}"
            ) from e
        raise


def _find_by_name(collections: list[dict[str, Any]], name: str) -> dict[str, Any]:
    matches = [c for c in collections if c.get("name") == name]
    if not matches:
        raise DefinitionLookupError(f"Unable to find collection with name {name!r}")
    if len(matches) > 1:
        ids = ", ".join(str(c.get("id")) for c in matches)
        raise DefinitionLookupError(
            f"Several collections are named {name!r} (ids {ids}), declare one by id"
        )
    return matches[0]
