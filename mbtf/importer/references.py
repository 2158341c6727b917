"""Rewriting of foreign keys in raw API payloads.

Payloads are walked as plain JSON values (dicts, lists and scalars). Every
recognized reference site is replaced in place by the resolution record of the
entity it points to, which the placeholder codec later renders as an HCL
expression. Everything else is passed through verbatim.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from mbtf.importer.errors import ShapeError
from mbtf.importer.placeholders import encode_compact
from mbtf.importer.records import PrefixedCardReference
from mbtf.metabase.constants import (
    CARD_ID_ATTRIBUTE,
    CARD_SOURCE_PREFIX,
    CARD_TABLE_PREFIX,
    COLLECTION_ID_ATTRIBUTE,
    COLUMN_SETTINGS_ATTRIBUTE,
    DATABASE_ATTRIBUTE,
    DATASET_QUERY_ATTRIBUTE,
    FIELD_LITERAL,
    FIELD_REFERENCE_LITERAL,
    PARAMETER_MAPPINGS_ATTRIBUTE,
    SERIES_ATTRIBUTE,
    SOURCE_CARD_ATTRIBUTE,
    SOURCE_FIELD_ATTRIBUTE,
    SOURCE_TABLE_ATTRIBUTE,
    TARGET_ATTRIBUTE,
)

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext

Path = tuple[str | int, ...]

_DIGITS = re.compile(r"[0-9]+")


def is_id(value: Any) -> bool:
    """Whether a JSON value is an integer ID (booleans are not)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _prefixed_id(value: str, prefix: str) -> int | None:
    """Parse `<prefix><id>`, e.g. `card__12`, returning None if it does not match."""
    if not value.startswith(prefix):
        return None
    suffix = value[len(prefix) :]
    if not _DIGITS.fullmatch(suffix):
        return None
    return int(suffix)


class ReferenceResolver:
    """Finds reference sites in payloads and resolves them through the context.

    Methods mutate the payload they are given. Malformed reference sites raise
    `ShapeError` with the path of the attribute, and errors raised while
    resolving a referenced entity propagate unchanged.
    """

    def __init__(self, ctx: ImportContext) -> None:
        self.ctx = ctx

    def rewrite(self, tree: Any, path: Path = ()) -> Any:
        """Rewrite the references that can appear anywhere in a payload.

        These are `source-table` and `source-card` attributes, and field
        reference arrays (`["field", <id>, <options>]`).

        Args:
            tree: JSON value to rewrite in place
            path: Path of `tree` in the payload, for error messages

        Returns:
            The same tree
        """
        if isinstance(tree, dict):
            for key, value in list(tree.items()):
                child_path = (*path, key)
                if key == SOURCE_TABLE_ATTRIBUTE:
                    tree[key] = self._resolve_source_table(value, child_path)
                elif key == SOURCE_CARD_ATTRIBUTE:
                    tree[key] = self._resolve_source_card(value, child_path)
                else:
                    self.rewrite(value, child_path)
        elif isinstance(tree, list):
            if self.try_insert_field_reference(tree, path):
                return tree
            for index, item in enumerate(tree):
                self.rewrite(item, (*path, index))
        return tree

    def try_insert_field_reference(self, array: list[Any], path: Path = ()) -> bool:
        """Resolve the field of a `["field", <id>, ...]` array.

        Arrays referencing a field by name (`["field", "total", {...}]`) are
        not references to a remote entity and are left alone.

        Returns:
            True if the array was a field reference and has been rewritten
        """
        if len(array) < 2 or array[0] != FIELD_LITERAL or not is_id(array[1]):
            return False

        array[1] = self.ctx.import_field(array[1])

        # Implicit joins name the foreign key they go through
        if len(array) > 2 and isinstance(array[2], dict):
            options = array[2]
            source_field = options.get(SOURCE_FIELD_ATTRIBUTE)
            if source_field is not None:
                if not is_id(source_field):
                    raise ShapeError(
                        "Expected an integer field ID",
                        (*path, 2, SOURCE_FIELD_ATTRIBUTE),
                    )
                options[SOURCE_FIELD_ATTRIBUTE] = self.ctx.import_field(source_field)

        return True

    def insert_database_reference(self, card: dict[str, Any]) -> None:
        """Resolve `dataset_query.database`, which every card must have."""
        query = card.get(DATASET_QUERY_ATTRIBUTE)
        if query is None:
            raise ShapeError("Card has no query", (DATASET_QUERY_ATTRIBUTE,))
        if not isinstance(query, dict):
            raise ShapeError("Expected an object", (DATASET_QUERY_ATTRIBUTE,))

        path = (DATASET_QUERY_ATTRIBUTE, DATABASE_ATTRIBUTE)
        if DATABASE_ATTRIBUTE not in query:
            raise ShapeError("Query has no database", path)

        database_id = query[DATABASE_ATTRIBUTE]
        if not is_id(database_id):
            raise ShapeError("Expected an integer database ID", path)

        query[DATABASE_ATTRIBUTE] = self.ctx.import_database(database_id)

    def insert_collection_reference(
        self, obj: dict[str, Any], path: Path = ()
    ) -> None:
        """Resolve `collection_id`. A null ID stands for the root collection."""
        attribute_path = (*path, COLLECTION_ID_ATTRIBUTE)
        if COLLECTION_ID_ATTRIBUTE not in obj:
            raise ShapeError("Missing collection ID", attribute_path)

        collection_id = obj[COLLECTION_ID_ATTRIBUTE]
        if collection_id is None:
            return
        if not is_id(collection_id):
            raise ShapeError("Expected an integer collection ID", attribute_path)

        obj[COLLECTION_ID_ATTRIBUTE] = self.ctx.import_collection(collection_id)

    def insert_column_settings_references(
        self, visualization_settings: Any, path: Path = ()
    ) -> None:
        """Resolve fields in the JSON-encoded keys of `column_settings`.

        Keys such as `["ref",["field",42,null]]` are decoded, their field is
        resolved, and the value is moved to the re-encoded key. Keys that are
        not field references are kept as they are.
        """
        if visualization_settings is None:
            return
        if not isinstance(visualization_settings, dict):
            raise ShapeError("Expected an object", path)

        column_settings = visualization_settings.get(COLUMN_SETTINGS_ATTRIBUTE)
        if column_settings is None:
            return

        settings_path = (*path, COLUMN_SETTINGS_ATTRIBUTE)
        if not isinstance(column_settings, dict):
            raise ShapeError("Expected an object", settings_path)

        # Re-keyed entries are collected first, to keep iterating over the
        # original keys only
        moved: dict[str, Any] = {}
        for key in list(column_settings):
            try:
                key_array = json.loads(key)
            except ValueError:
                continue

            if (
                not isinstance(key_array, list)
                or len(key_array) < 2
                or key_array[0] != FIELD_REFERENCE_LITERAL
                or not isinstance(key_array[1], list)
            ):
                continue

            if self.try_insert_field_reference(key_array[1], (*settings_path, key)):
                moved[encode_compact(key_array)] = column_settings.pop(key)

        column_settings.update(moved)

    def insert_visualization_card_references(
        self, visualization_settings: Any, path: Path = ()
    ) -> None:
        """Resolve `card:<id>` sources of visualizer column mappings."""
        if not isinstance(visualization_settings, dict):
            return

        visualization = visualization_settings.get("visualization")
        if not isinstance(visualization, dict):
            return

        mappings = visualization.get("columnValuesMapping")
        if not isinstance(mappings, dict):
            return

        for column_defs in mappings.values():
            if not isinstance(column_defs, list):
                continue
            for column_def in column_defs:
                if not isinstance(column_def, dict):
                    continue
                source_id = column_def.get("sourceId")
                if not isinstance(source_id, str):
                    continue
                card_id = _prefixed_id(source_id, CARD_SOURCE_PREFIX)
                if card_id is None:
                    continue
                column_def["sourceId"] = PrefixedCardReference(
                    self.ctx.import_card(card_id), CARD_SOURCE_PREFIX
                )

    def insert_parameter_references(self, parameters: Any, path: Path) -> None:
        """Resolve references in a list of card or dashboard parameters.

        A parameter taking its values from a card references it in
        `values_source_config.card_id`, and the column of that card in
        `values_source_config.value_field`.
        """
        if parameters is None:
            return
        if not isinstance(parameters, list):
            raise ShapeError("Expected an array", path)

        for index, parameter in enumerate(parameters):
            parameter_path = (*path, index)
            if not isinstance(parameter, dict):
                raise ShapeError("Expected an object", parameter_path)

            target = parameter.get(TARGET_ATTRIBUTE)
            if isinstance(target, list):
                self.rewrite(target, (*parameter_path, TARGET_ATTRIBUTE))

            config = parameter.get("values_source_config")
            if not isinstance(config, dict):
                continue
            config_path = (*parameter_path, "values_source_config")

            if parameter.get("values_source_type") == "card":
                card_id = config.get(CARD_ID_ATTRIBUTE)
                if card_id is not None:
                    if not is_id(card_id):
                        raise ShapeError(
                            "Expected an integer card ID",
                            (*config_path, CARD_ID_ATTRIBUTE),
                        )
                    config[CARD_ID_ATTRIBUTE] = self.ctx.import_card(card_id)

            value_field = config.get("value_field")
            if isinstance(value_field, list):
                self.rewrite(value_field, (*config_path, "value_field"))

    def insert_dashcard_references(
        self, dashcard: dict[str, Any], path: Path
    ) -> None:
        """Resolve the cards and fields referenced by a dashcard."""
        self._insert_card_reference(dashcard, path)

        mappings = dashcard.get(PARAMETER_MAPPINGS_ATTRIBUTE)
        if mappings is not None:
            mappings_path = (*path, PARAMETER_MAPPINGS_ATTRIBUTE)
            if not isinstance(mappings, list):
                raise ShapeError("Expected an array", mappings_path)

            for index, mapping in enumerate(mappings):
                mapping_path = (*mappings_path, index)
                if not isinstance(mapping, dict):
                    raise ShapeError("Expected an object", mapping_path)

                # Each mapping references the card of its dashcard, or one
                # of its series
                self._insert_card_reference(mapping, mapping_path)

                # The target may have other structures, only arrays are walked
                target = mapping.get(TARGET_ATTRIBUTE)
                if isinstance(target, list):
                    self.rewrite(target, (*mapping_path, TARGET_ATTRIBUTE))

        series = dashcard.get(SERIES_ATTRIBUTE)
        if series is not None:
            series_path = (*path, SERIES_ATTRIBUTE)
            if not isinstance(series, list):
                raise ShapeError("Expected an array", series_path)

            for index, item in enumerate(series):
                if not isinstance(item, dict) or not is_id(item.get("id")):
                    raise ShapeError("Expected a card with an ID", (*series_path, index))
                series[index] = {"id": self.ctx.import_card(item["id"])}

        self.insert_visualization_card_references(
            dashcard.get("visualization_settings"),
            (*path, "visualization_settings"),
        )

    def _insert_card_reference(self, obj: dict[str, Any], path: Path) -> None:
        # A null card ID is legal, e.g. for text and heading dashcards
        attribute_path = (*path, CARD_ID_ATTRIBUTE)
        if CARD_ID_ATTRIBUTE not in obj:
            raise ShapeError("Missing card ID", attribute_path)

        card_id = obj[CARD_ID_ATTRIBUTE]
        if card_id is None:
            return
        if not is_id(card_id):
            raise ShapeError("Expected an integer card ID", attribute_path)

        obj[CARD_ID_ATTRIBUTE] = self.ctx.import_card(card_id)

    def _resolve_source_table(self, value: Any, path: Sequence[str | int]) -> Any:
        if is_id(value):
            return self.ctx.import_table(value)

        # Nested questions use the card as a table
        if isinstance(value, str):
            card_id = _prefixed_id(value, CARD_TABLE_PREFIX)
            if card_id is not None:
                return PrefixedCardReference(
                    self.ctx.import_card(card_id), CARD_TABLE_PREFIX
                )

        raise ShapeError("Expected a table ID or a card__<id> reference", path)

    def _resolve_source_card(self, value: Any, path: Sequence[str | int]) -> Any:
        if not is_id(value):
            raise ShapeError("Expected an integer card ID", path)
        return self.ctx.import_card(value)
