"""Typed views of Metabase API objects.

Only the attributes the importer relies on are declared. Everything else the
API returns is kept as extra attributes, so a model can always be dumped back to
the payload it was built from.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field as PydanticField


class MetabaseObject(BaseModel):
    """Base for Metabase API objects."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)


class Collection(MetabaseObject):
    """A collection. The root collection has the string ID `root`."""

    id: int | str
    name: str
    description: str | None = None
    location: str | None = None  # e.g. "/12/34/" for a grand-child collection
    personal_owner_id: int | None = None

    @property
    def key(self) -> str:
        """ID as a string, the way collection IDs are keyed by the importer."""
        return str(self.id)

    @property
    def parent_id(self) -> int | None:
        """ID of the parent collection, inferred from `location`.

        The API does not return the parent ID, but the last element of the
        location path is the direct parent.
        """
        if not self.location or self.location == "/":
            return None
        parts = [p for p in self.location.split("/") if p]
        if not parts:
            return None
        return int(parts[-1])


class Database(MetabaseObject):
    """A database connection."""

    id: int
    name: str
    engine: str | None = None


class Field(MetabaseObject):
    """A field (column) in a table."""

    id: int
    name: str
    table_id: int
    display_name: str | None = None
    semantic_type: str | None = None
    base_type: str | None = None


class Table(MetabaseObject):
    """A table, as returned by the `query_metadata` endpoint."""

    id: int
    db_id: int
    name: str
    schema_name: str | None = PydanticField(None, alias="schema")
    display_name: str | None = None
    fields: list[Field] = PydanticField(default_factory=list)

    @property
    def qualified_name(self) -> str:
        """Name prefixed by the schema, when the schema is not empty."""
        if self.schema_name:
            return f"{self.schema_name}_{self.name}"
        return self.name


class Card(MetabaseObject):
    """A card (question or model)."""

    id: int
    name: str
    description: str | None = None
    collection_id: int | None = None
    database_id: int | None = None
    display: str | None = None
    query_type: str | None = None


class Dashboard(MetabaseObject):
    """A dashboard."""

    id: int
    name: str
    description: str | None = None
    collection_id: int | str | None = None
    collection_position: int | None = None
    cache_ttl: int | None = None
    parameters: list[dict[str, Any]] = PydanticField(default_factory=list)
    dashcards: list[dict[str, Any]] = PydanticField(default_factory=list)
    tabs: list[dict[str, Any]] = PydanticField(default_factory=list)


class CollectionItem(MetabaseObject):
    """An item listed in a collection."""

    id: int
    name: str
    model: str
    description: str | None = None
