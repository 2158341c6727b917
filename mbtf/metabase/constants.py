"""Attribute names and allow-lists for Metabase API payloads."""

from __future__ import annotations

# Attributes of a card needed to fully define it, e.g. when creating it
DEFINING_CARD_ATTRIBUTES = frozenset(
    {
        "cache_ttl",
        "collection_id",
        "collection_position",
        "dataset_query",
        "description",
        "display",
        "name",
        "parameter_mappings",
        "parameters",
        "query_type",
        "visualization_settings",
    }
)

# Attributes of a dashboard rendered in the `metabase_dashboard` resource
DEFINING_DASHBOARD_ATTRIBUTES = frozenset(
    {
        "cache_ttl",
        "collection_id",
        "collection_position",
        "dashcards",
        "description",
        "name",
        "ordered_cards",  # Older Metabase versions
        "parameters",
        "tabs",
    }
)

# Attributes of a dashcard expected in `cards_json`
DASHCARD_ATTRIBUTES = frozenset(
    {
        "card_id",
        "col",
        "dashboard_tab_id",
        "id",
        "parameter_mappings",
        "row",
        "series",
        "size_x",
        "size_y",
        "visualization_settings",
    }
)

# Attributes of a dashboard tab expected in `tabs_json`
DASHBOARD_TAB_ATTRIBUTES = frozenset({"id", "name"})

# Attribute whose value is the ID of a table
SOURCE_TABLE_ATTRIBUTE = "source-table"

# Attribute whose value is the ID of a card (nested questions, MBQL 5)
SOURCE_CARD_ATTRIBUTE = "source-card"

# Field option referencing the foreign key used for an implicit join
SOURCE_FIELD_ATTRIBUTE = "source-field"

# Literal tagging an array as a reference to a field
FIELD_LITERAL = "field"

# Literal tagging an array whose next element is a field reference
FIELD_REFERENCE_LITERAL = "ref"

# Prefix of string table IDs pointing to a card (`card__12`)
CARD_TABLE_PREFIX = "card__"

# Prefix of visualizer column sources pointing to a card (`card:12`)
CARD_SOURCE_PREFIX = "card:"

DATASET_QUERY_ATTRIBUTE = "dataset_query"
DATABASE_ATTRIBUTE = "database"
VISUALIZATION_SETTINGS_ATTRIBUTE = "visualization_settings"
COLUMN_SETTINGS_ATTRIBUTE = "column_settings"
COLLECTION_ID_ATTRIBUTE = "collection_id"
CARD_ID_ATTRIBUTE = "card_id"
PARAMETERS_ATTRIBUTE = "parameters"
PARAMETER_MAPPINGS_ATTRIBUTE = "parameter_mappings"
TARGET_ATTRIBUTE = "target"
SERIES_ATTRIBUTE = "series"
DASHBOARD_TAB_ID_ATTRIBUTE = "dashboard_tab_id"

# Identifier of the root collection
ROOT_COLLECTION_ID = "root"
