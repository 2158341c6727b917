"""Dashboards and their `metabase_dashboard` resources.

Dashcards and tabs are identified by IDs assigned by the server, which cannot
be known before the dashboard is created. In the generated definition they get
negative sentinel IDs derived from their position instead (`-1` for the first
one, `-2` for the second, and so on), and `dashboard_tab_id` is remapped
accordingly.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from mbtf.importer.context import EntityKind
from mbtf.importer.errors import ShapeError, parse_payload
from mbtf.importer.placeholders import finalize_hcl, hcl_string, render_json
from mbtf.importer.records import ImportedCollection, ImportedDashboard
from mbtf.importer.references import ReferenceResolver, is_id
from mbtf.metabase.constants import (
    COLLECTION_ID_ATTRIBUTE,
    DASHBOARD_TAB_ATTRIBUTES,
    DASHBOARD_TAB_ID_ATTRIBUTE,
    DASHCARD_ATTRIBUTES,
    DEFINING_DASHBOARD_ATTRIBUTES,
    PARAMETERS_ATTRIBUTE,
)
from mbtf.metabase.models import Dashboard

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext


def sentinel_id(position: int) -> int:
    """Sentinel ID of the dashcard or tab at `position` (0-based)."""
    return -(position + 1)


def load_dashboard(ctx: ImportContext, dashboard_id: int) -> ImportedDashboard:
    """Fetch a dashboard, import every card it shows, and render it."""
    raw = ctx.client.get_dashboard(dashboard_id)
    dashboard = parse_payload(Dashboard, raw, f"dashboard {dashboard_id}")
    slug = ctx.allocate_slug(EntityKind.DASHBOARD, dashboard.name)

    body = copy.deepcopy(
        {k: v for k, v in raw.items() if k in DEFINING_DASHBOARD_ATTRIBUTES}
    )
    try:
        tabs, tab_ids = make_tabs(body.get("tabs"))
        dashcards = make_dashcards(ctx, _get_dashcards(body), tab_ids)

        parameters = body.get(PARAMETERS_ATTRIBUTE) or []
        ReferenceResolver(ctx).insert_parameter_references(
            parameters, (PARAMETERS_ATTRIBUTE,)
        )

        collection = _get_collection(ctx, body)

        hcl = render_dashboard(
            dashboard,
            slug,
            collection=collection,
            parameters=parameters,
            dashcards=dashcards,
            tabs=tabs,
        )
    except Exception:
        ctx.release_slug(EntityKind.DASHBOARD, slug)
        raise

    record = ImportedDashboard(
        dashboard=dashboard,
        slug=slug,
        hcl=hcl,
        tab_ids=tab_ids,
    )
    ctx.log(f"Imported dashboard {dashboard_id} as {record.expression}")
    return record


def make_tabs(raw_tabs: Any) -> tuple[list[dict[str, Any]], dict[int, int]]:
    """Filter tabs and replace their IDs with sentinels.

    Returns:
        The filtered tabs, and the mapping from server IDs to sentinel IDs
    """
    if raw_tabs is None:
        return [], {}
    if not isinstance(raw_tabs, list):
        raise ShapeError("Expected an array", ("tabs",))

    tabs = []
    tab_ids: dict[int, int] = {}
    for position, raw_tab in enumerate(raw_tabs):
        if not isinstance(raw_tab, dict) or not is_id(raw_tab.get("id")):
            raise ShapeError("Expected a tab with an ID", ("tabs", position))

        tab = {k: v for k, v in raw_tab.items() if k in DASHBOARD_TAB_ATTRIBUTES}
        tab_ids[raw_tab["id"]] = tab["id"] = sentinel_id(position)
        tabs.append(tab)

    return tabs, tab_ids


def make_dashcards(
    ctx: ImportContext,
    raw_dashcards: list[Any],
    tab_ids: dict[int, int],
) -> list[dict[str, Any]]:
    """Filter dashcards, assign sentinel IDs and resolve their references."""
    resolver = ReferenceResolver(ctx)
    dashcards = []

    for position, raw_dashcard in enumerate(raw_dashcards):
        path = ("dashcards", position)
        if not isinstance(raw_dashcard, dict):
            raise ShapeError("Expected an object", path)

        dashcard = {k: v for k, v in raw_dashcard.items() if k in DASHCARD_ATTRIBUTES}
        dashcard["id"] = sentinel_id(position)

        tab_id = dashcard.get(DASHBOARD_TAB_ID_ATTRIBUTE)
        if tab_id is not None:
            if tab_id not in tab_ids:
                raise ShapeError(
                    f"Unknown dashboard tab {tab_id}",
                    (*path, DASHBOARD_TAB_ID_ATTRIBUTE),
                )
            dashcard[DASHBOARD_TAB_ID_ATTRIBUTE] = tab_ids[tab_id]

        resolver.insert_dashcard_references(dashcard, path)
        dashcards.append(dashcard)

    return dashcards


def render_dashboard(
    dashboard: Dashboard,
    slug: str,
    *,
    collection: ImportedCollection | None,
    parameters: list[Any],
    dashcards: list[dict[str, Any]],
    tabs: list[dict[str, Any]],
) -> str:
    """Render the `metabase_dashboard` resource of a dashboard."""
    description = (
        hcl_string(dashboard.description) if dashboard.description else "null"
    )
    collection_id = collection.resource_reference if collection else "null"

    hcl = (
        f'resource "metabase_dashboard" "{slug}" {{\n'
        f"  name                = {hcl_string(dashboard.name)}\n"
        f"  description         = {description}\n"
        f"  cache_ttl           = {_number(dashboard.cache_ttl)}\n"
        f"  collection_id       = {collection_id}\n"
        f"  collection_position = {_number(dashboard.collection_position)}\n"
        "\n"
        f"  parameters_json = jsonencode({render_json(parameters)})\n"
        "\n"
        f"  cards_json = jsonencode({render_json(dashcards)})\n"
    )
    if tabs:
        hcl += f"\n  tabs_json = jsonencode({render_json(tabs)})\n"
    hcl += "}\n"

    return finalize_hcl(hcl, f"dashboard {slug}")


def _number(value: int | None) -> str:
    return "null" if value is None else str(value)


def _get_dashcards(body: dict[str, Any]) -> list[Any]:
    # Older Metabase versions name dashcards `ordered_cards`
    dashcards = body.get("dashcards")
    if dashcards is None:
        dashcards = body.get("ordered_cards")
    if dashcards is None:
        return []
    if not isinstance(dashcards, list):
        raise ShapeError("Expected an array", ("dashcards",))
    return dashcards


def _get_collection(
    ctx: ImportContext, body: dict[str, Any]
) -> ImportedCollection | None:
    holder = {COLLECTION_ID_ATTRIBUTE: body.get(COLLECTION_ID_ATTRIBUTE)}
    ReferenceResolver(ctx).insert_collection_reference(holder)
    collection: ImportedCollection | None = holder[COLLECTION_ID_ATTRIBUTE]
    return collection
