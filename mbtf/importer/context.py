"""Import context: the state of one import run.

The context owns the API client, the cache of resolution records and the slug
registries. It is created once per run and passed to every fetch-and-render
function, so nothing is shared between runs (or between tests).
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Hashable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from rich.console import Console

from mbtf.importer.errors import DuplicateDefinitionError
from mbtf.importer.slugs import make_unique_slug

if TYPE_CHECKING:
    from mbtf.importer.records import (
        ImportedCard,
        ImportedCollection,
        ImportedDashboard,
        ImportedDatabase,
        ImportedField,
        ImportedTable,
    )
    from mbtf.metabase.client import MetabaseClient

R = TypeVar("R")


class EntityKind(str, Enum):
    """Kinds of Metabase entities handled by the importer."""

    COLLECTION = "collection"
    DATABASE = "database"
    TABLE = "table"
    FIELD = "field"
    CARD = "card"
    DASHBOARD = "dashboard"


class EntityCache:
    """Resolution records, keyed by entity kind and remote ID."""

    def __init__(self) -> None:
        self._records: dict[EntityKind, dict[Hashable, Any]] = defaultdict(dict)

    def get(self, kind: EntityKind, entity_id: Hashable) -> Any | None:
        return self._records[kind].get(entity_id)

    def __contains__(self, key: tuple[EntityKind, Hashable]) -> bool:
        kind, entity_id = key
        return entity_id in self._records[kind]

    def resolve(
        self,
        kind: EntityKind,
        entity_id: Hashable,
        loader: Callable[[], R],
    ) -> R:
        """Return the cached record, or load and cache it.

        Errors raised by `loader` propagate and nothing is cached, so a later
        call for the same ID runs the loader again.
        """
        records = self._records[kind]
        if entity_id in records:
            cached: R = records[entity_id]
            return cached

        record = loader()
        records[entity_id] = record
        return record

    def register(self, kind: EntityKind, entity_id: Hashable, record: Any) -> None:
        """Insert a record defined up front, refusing to overwrite one.

        Raises:
            DuplicateDefinitionError: If a record already exists for this ID
        """
        if entity_id in self._records[kind]:
            raise DuplicateDefinitionError(
                f"{kind.value} {entity_id} has already been imported"
            )
        self._records[kind][entity_id] = record

    def records(self, kind: EntityKind) -> list[Any]:
        """Records of a kind, in resolution order."""
        return list(self._records[kind].values())


class ImportContext:
    """State shared by all fetch-and-render functions during one run."""

    def __init__(
        self,
        client: MetabaseClient,
        *,
        import_missing_collections: bool = False,
        console: Console | None = None,
        verbose: bool = False,
    ) -> None:
        """Initialize the context.

        Args:
            client: Client used to call the Metabase API
            import_missing_collections: Import collections that are not
                declared in the configuration, instead of failing
            console: Rich console for verbose output
            verbose: Print a line for every imported entity
        """
        self.client = client
        self.import_missing_collections = import_missing_collections
        self.console = console or Console()
        self.verbose = verbose
        self.cache = EntityCache()
        self.slugs: dict[EntityKind, set[str]] = defaultdict(set)

    def allocate_slug(self, kind: EntityKind, name: str) -> str:
        """Allocate a slug unique among entities of the same kind."""
        return make_unique_slug(name, self.slugs[kind])

    def claim_slug(self, kind: EntityKind, slug: str) -> None:
        """Reserve a slug chosen in the configuration.

        Raises:
            DuplicateDefinitionError: If the slug is already used
        """
        if slug in self.slugs[kind]:
            raise DuplicateDefinitionError(
                f"resource name {slug} is used by two {kind.value} definitions"
            )
        self.slugs[kind].add(slug)

    def release_slug(self, kind: EntityKind, slug: str) -> None:
        """Free the slug of an entity whose import failed."""
        self.slugs[kind].discard(slug)

    def log(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{message}[/dim]")

    def resolve(self, kind: EntityKind, entity_id: Hashable) -> Any:
        """Resolve an entity through the cache, loading it when needed."""
        loader = _loader_for(kind)
        return self.cache.resolve(kind, entity_id, lambda: loader(self, entity_id))

    def import_collection(self, collection_id: int | str) -> ImportedCollection:
        record: ImportedCollection = self.resolve(
            EntityKind.COLLECTION, str(collection_id)
        )
        return record

    def import_database(self, database_id: int) -> ImportedDatabase:
        record: ImportedDatabase = self.resolve(EntityKind.DATABASE, database_id)
        return record

    def import_table(self, table_id: int) -> ImportedTable:
        record: ImportedTable = self.resolve(EntityKind.TABLE, table_id)
        return record

    def import_field(self, field_id: int) -> ImportedField:
        record: ImportedField = self.resolve(EntityKind.FIELD, field_id)
        return record

    def import_card(self, card_id: int) -> ImportedCard:
        record: ImportedCard = self.resolve(EntityKind.CARD, card_id)
        return record

    def import_dashboard(self, dashboard_id: int) -> ImportedDashboard:
        record: ImportedDashboard = self.resolve(EntityKind.DASHBOARD, dashboard_id)
        return record

    @property
    def collections(self) -> list[ImportedCollection]:
        return self.cache.records(EntityKind.COLLECTION)

    @property
    def databases(self) -> list[ImportedDatabase]:
        return self.cache.records(EntityKind.DATABASE)

    @property
    def tables(self) -> list[ImportedTable]:
        return self.cache.records(EntityKind.TABLE)

    @property
    def cards(self) -> list[ImportedCard]:
        return self.cache.records(EntityKind.CARD)

    @property
    def dashboards(self) -> list[ImportedDashboard]:
        return self.cache.records(EntityKind.DASHBOARD)


def _loader_for(kind: EntityKind) -> Callable[[ImportContext, Any], Any]:
    """Fetch-and-render function for an entity kind."""
    from mbtf.importer.card import load_card
    from mbtf.importer.collection import load_collection
    from mbtf.importer.dashboard import load_dashboard
    from mbtf.importer.database import load_database
    from mbtf.importer.field import load_field
    from mbtf.importer.table import load_table

    loaders: dict[EntityKind, Callable[[ImportContext, Any], Any]] = {
        EntityKind.COLLECTION: load_collection,
        EntityKind.DATABASE: load_database,
        EntityKind.TABLE: load_table,
        EntityKind.FIELD: load_field,
        EntityKind.CARD: load_card,
        EntityKind.DASHBOARD: load_dashboard,
    }
    return loaders[kind]
