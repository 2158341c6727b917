"""Shared fixtures: an in-memory Metabase API and an import context over it."""

from __future__ import annotations

import copy
from collections import Counter
from typing import Any

import pytest

from mbtf.importer import (
    ExistingCollectionDefinition,
    ExistingDatabaseDefinition,
    ImportContext,
    register_collections,
    register_databases,
)
from mbtf.metabase import MetabaseAPIError


class FakeMetabaseClient:
    """Serves payloads from dictionaries and counts calls.

    Payloads are deep-copied on the way out, like fresh API responses.
    """

    def __init__(self) -> None:
        self.cards: dict[int, dict[str, Any]] = {}
        self.dashboards: dict[int, dict[str, Any]] = {}
        self.tables: dict[int, dict[str, Any]] = {}
        self.fields: dict[int, dict[str, Any]] = {}
        self.collections: dict[str, dict[str, Any]] = {}
        self.databases: dict[int, dict[str, Any]] = {}
        self.collection_items: dict[str, list[dict[str, Any]]] = {}
        self.calls: Counter[tuple[str, Any]] = Counter()

    def _get(self, store: dict[Any, dict[str, Any]], kind: str, key: Any) -> Any:
        self.calls[(kind, key)] += 1
        if key not in store:
            raise MetabaseAPIError(f"{kind} {key} not found", status_code=404)
        return copy.deepcopy(store[key])

    def get_card(self, card_id: int) -> dict[str, Any]:
        return self._get(self.cards, "card", card_id)

    def get_dashboard(self, dashboard_id: int) -> dict[str, Any]:
        return self._get(self.dashboards, "dashboard", dashboard_id)

    def get_table_metadata(self, table_id: int) -> dict[str, Any]:
        return self._get(self.tables, "table", table_id)

    def get_field(self, field_id: int) -> dict[str, Any]:
        return self._get(self.fields, "field", field_id)

    def get_collection(self, collection_id: int | str) -> dict[str, Any]:
        return self._get(self.collections, "collection", str(collection_id))

    def get_database(self, database_id: int) -> dict[str, Any]:
        return self._get(self.databases, "database", database_id)

    def list_collections(self) -> list[dict[str, Any]]:
        self.calls[("collections", None)] += 1
        return copy.deepcopy(list(self.collections.values()))

    def list_databases(self) -> list[dict[str, Any]]:
        self.calls[("databases", None)] += 1
        return copy.deepcopy(list(self.databases.values()))

    def list_collection_items(
        self,
        collection_id: int | str,
        models: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        self.calls[("items", str(collection_id))] += 1
        items = self.collection_items.get(str(collection_id), [])
        if models:
            items = [item for item in items if item["model"] in models]
        return copy.deepcopy(items)

    def close(self) -> None:
        pass

    # Helpers to populate the fake

    def add_table(self, table_id: int, name: str, fields: dict[int, str], **attrs: Any) -> None:
        table = {"id": table_id, "name": name, "db_id": 1, "schema": "public"}
        table.update(attrs)
        table["fields"] = [
            {"id": field_id, "name": field_name, "table_id": table_id}
            for field_id, field_name in fields.items()
        ]
        self.tables[table_id] = table
        for field in table["fields"]:
            self.fields[field["id"]] = field

    def add_card(self, card_id: int, name: str, query: dict[str, Any], **attrs: Any) -> None:
        card = {
            "id": card_id,
            "name": name,
            "description": None,
            "collection_id": None,
            "display": "table",
            "query_type": "query",
            "dataset_query": {"database": 1, "type": "query", "query": query},
            "visualization_settings": {},
            "parameters": [],
            "parameter_mappings": [],
            # Attributes that are not part of the definition
            "creator_id": 3,
            "archived": False,
        }
        card.update(attrs)
        self.cards[card_id] = card


@pytest.fixture
def client() -> FakeMetabaseClient:
    """Fake API with a declared database (1) and collection (20)."""
    fake = FakeMetabaseClient()
    fake.databases[1] = {"id": 1, "name": "Warehouse", "engine": "postgres"}
    fake.collections["20"] = {
        "id": 20,
        "name": "Marketing",
        "location": "/",
    }
    fake.add_table(
        10,
        "orders",
        {100: "total", 101: "created_at", 102: "customer_id"},
    )
    fake.add_table(11, "customers", {110: "name", 111: "id"})
    return fake


@pytest.fixture
def ctx(client: FakeMetabaseClient) -> ImportContext:
    """Import context with database 1 and collection 20 declared."""
    context = ImportContext(client)  # type: ignore[arg-type]
    register_databases(
        context, [ExistingDatabaseDefinition(resource_name="warehouse", id=1)]
    )
    register_collections(
        context, [ExistingCollectionDefinition(resource_name="marketing", id=20)]
    )
    return context
