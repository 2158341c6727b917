"""Selection of the dashboards to import."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from mbtf.importer.errors import parse_payload
from mbtf.metabase.models import CollectionItem

if TYPE_CHECKING:
    from mbtf.config import CollectionMatcher, DashboardFilterConfig
    from mbtf.metabase.client import MetabaseClient


def matches_collection(
    collection: dict[str, Any],
    matchers: Sequence[CollectionMatcher],
) -> bool:
    """Whether a listed collection matches one of the matchers.

    A matcher matches a collection by ID, or by searching its name pattern in
    the collection name.
    """
    collection_id = str(collection.get("id"))
    name = collection.get("name") or ""

    for matcher in matchers:
        if matcher.id is not None and str(matcher.id) == collection_id:
            return True
        if matcher.name and re.search(matcher.name, name):
            return True

    return False


def list_collections_to_import(
    client: MetabaseClient,
    filter_config: DashboardFilterConfig,
) -> list[str]:
    """List the IDs of the collections whose dashboards should be imported.

    Excluded collections are dropped first. When no collection is explicitly
    included, every remaining collection is.
    """
    collection_ids = []

    for collection in client.list_collections():
        if matches_collection(collection, filter_config.excluded_collections):
            continue
        if filter_config.included_collections and not matches_collection(
            collection, filter_config.included_collections
        ):
            continue
        collection_ids.append(str(collection["id"]))

    return collection_ids


def list_dashboards_to_import(
    client: MetabaseClient,
    filter_config: DashboardFilterConfig,
) -> list[int]:
    """List the IDs of the dashboards to import.

    Explicit dashboard IDs take precedence over every other filter. Otherwise,
    the dashboards of the selected collections are listed and filtered by
    name and description.

    Raises:
        MetabaseAPIError: If a listing fails
        PaginationError: If a collection listing is incomplete
        ShapeError: If a listed item has an unexpected shape
    """
    if filter_config.dashboard_ids:
        return list(filter_config.dashboard_ids)

    name_pattern = (
        re.compile(filter_config.dashboard_name)
        if filter_config.dashboard_name
        else None
    )
    description_pattern = (
        re.compile(filter_config.dashboard_description)
        if filter_config.dashboard_description
        else None
    )

    dashboard_ids = []
    for collection_id in list_collections_to_import(client, filter_config):
        items = client.list_collection_items(collection_id, models=["dashboard"])
        for raw_item in items:
            item = parse_payload(CollectionItem, raw_item, "collection item")
            if item.model != "dashboard":
                continue
            if name_pattern and not name_pattern.search(item.name):
                continue
            if description_pattern and (
                item.description is None
                or not description_pattern.search(item.description)
            ):
                continue
            dashboard_ids.append(item.id)

    return dashboard_ids
