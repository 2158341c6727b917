"""Tests for the reference resolver."""

import pytest

from mbtf.importer import ImportContext, ShapeError
from mbtf.importer.records import ImportedCard, ImportedField, PrefixedCardReference
from mbtf.importer.references import ReferenceResolver, is_id


@pytest.fixture
def resolver(ctx: ImportContext, client) -> ReferenceResolver:
    client.add_card(5, "Orders", {"source-table": 10})
    return ReferenceResolver(ctx)


class TestIsId:
    """Tests for is_id."""

    @pytest.mark.parametrize("value", [0, 1, 42])
    def test_integers(self, value: int) -> None:
        assert is_id(value)

    @pytest.mark.parametrize("value", [True, False, "1", 1.0, None])
    def test_other_values(self, value: object) -> None:
        assert not is_id(value)


class TestRewrite:
    """Tests for ReferenceResolver.rewrite."""

    def test_returns_the_same_tree(self, resolver: ReferenceResolver) -> None:
        tree = {"query": {"source-table": 10}}
        assert resolver.rewrite(tree) is tree
        assert tree["query"]["source-table"].slug == "public_orders"

    def test_scalars_are_untouched(self, resolver: ReferenceResolver) -> None:
        tree = {"limit": 10, "name": "field", "values": ["field", "x"]}
        resolver.rewrite(tree)
        assert tree == {"limit": 10, "name": "field", "values": ["field", "x"]}

    def test_boolean_is_not_a_field_id(self, resolver: ReferenceResolver) -> None:
        tree = ["field", True, None]
        resolver.rewrite(tree)
        assert tree == ["field", True, None]

    def test_field_arrays_at_any_depth(self, resolver: ReferenceResolver) -> None:
        tree = {"filter": ["and", ["=", ["field", 100, None], 5], ["field", 101, None]]}
        resolver.rewrite(tree)
        assert isinstance(tree["filter"][1][1][1], ImportedField)
        assert isinstance(tree["filter"][2][1], ImportedField)

    def test_card_table_reference(self, resolver: ReferenceResolver) -> None:
        tree = {"source-table": "card__5"}
        resolver.rewrite(tree)
        reference = tree["source-table"]
        assert isinstance(reference, PrefixedCardReference)
        assert reference.prefix == "card__"
        assert reference.card.slug == "orders"

    @pytest.mark.parametrize(
        "value", ["card__", "card__x", "card__²", "orders", 1.5, None]
    )
    def test_invalid_source_table(self, resolver: ReferenceResolver, value: object) -> None:
        with pytest.raises(ShapeError) as exc_info:
            resolver.rewrite({"stages": [{"source-table": value}]})
        assert exc_info.value.path == ("stages", 0, "source-table")

    def test_invalid_source_card(self, resolver: ReferenceResolver) -> None:
        with pytest.raises(ShapeError, match=r"at source-card"):
            resolver.rewrite({"source-card": "5"})

    def test_invalid_source_field(self, resolver: ReferenceResolver) -> None:
        with pytest.raises(ShapeError) as exc_info:
            resolver.rewrite({"breakout": [["field", 110, {"source-field": "102"}]]})
        assert exc_info.value.path == ("breakout", 0, 2, "source-field")


class TestParameters:
    """Tests for insert_parameter_references."""

    def test_none_is_accepted(self, resolver: ReferenceResolver) -> None:
        resolver.insert_parameter_references(None, ("parameters",))

    def test_not_an_array(self, resolver: ReferenceResolver) -> None:
        with pytest.raises(ShapeError, match=r"at parameters"):
            resolver.insert_parameter_references({"id": "x"}, ("parameters",))

    def test_not_an_object(self, resolver: ReferenceResolver) -> None:
        with pytest.raises(ShapeError) as exc_info:
            resolver.insert_parameter_references([{}, "x"], ("parameters",))
        assert exc_info.value.path == ("parameters", 1)

    def test_static_values_are_untouched(self, resolver: ReferenceResolver) -> None:
        parameters = [
            {
                "id": "p",
                "values_source_type": "static-list",
                "values_source_config": {"values": ["a", "b"]},
            }
        ]
        resolver.insert_parameter_references(parameters, ("parameters",))
        assert parameters[0]["values_source_config"] == {"values": ["a", "b"]}

    def test_invalid_card_id(self, resolver: ReferenceResolver) -> None:
        parameters = [
            {"values_source_type": "card", "values_source_config": {"card_id": "5"}}
        ]
        with pytest.raises(ShapeError) as exc_info:
            resolver.insert_parameter_references(parameters, ("parameters",))
        assert exc_info.value.path == (
            "parameters",
            0,
            "values_source_config",
            "card_id",
        )


class TestDashcards:
    """Tests for insert_dashcard_references."""

    def test_card_and_mappings(self, resolver: ReferenceResolver) -> None:
        dashcard = {
            "card_id": 5,
            "parameter_mappings": [
                {
                    "parameter_id": "p",
                    "card_id": 5,
                    "target": ["dimension", ["field", 100, None]],
                }
            ],
        }

        resolver.insert_dashcard_references(dashcard, ("dashcards", 0))

        assert isinstance(dashcard["card_id"], ImportedCard)
        mapping = dashcard["parameter_mappings"][0]
        assert mapping["card_id"] is dashcard["card_id"]
        assert isinstance(mapping["target"][1][1], ImportedField)

    def test_text_card(self, resolver: ReferenceResolver) -> None:
        dashcard = {"card_id": None, "visualization_settings": {"text": "# Title"}}
        resolver.insert_dashcard_references(dashcard, ("dashcards", 0))
        assert dashcard["card_id"] is None

    def test_missing_card_id(self, resolver: ReferenceResolver) -> None:
        with pytest.raises(ShapeError) as exc_info:
            resolver.insert_dashcard_references({}, ("dashcards", 3))
        assert exc_info.value.path == ("dashcards", 3, "card_id")

    def test_series_are_reduced_to_card_references(self, resolver: ReferenceResolver) -> None:
        dashcard = {"card_id": None, "series": [{"id": 5, "name": "Orders", "display": "bar"}]}
        resolver.insert_dashcard_references(dashcard, ("dashcards", 0))
        assert list(dashcard["series"][0]) == ["id"]
        assert dashcard["series"][0]["id"].slug == "orders"

    def test_invalid_series(self, resolver: ReferenceResolver) -> None:
        with pytest.raises(ShapeError) as exc_info:
            resolver.insert_dashcard_references(
                {"card_id": None, "series": [{"name": "x"}]}, ("dashcards", 0)
            )
        assert exc_info.value.path == ("dashcards", 0, "series", 0)

    def test_visualizer_sources(self, resolver: ReferenceResolver) -> None:
        dashcard = {
            "card_id": None,
            "visualization_settings": {
                "visualization": {
                    "columnValuesMapping": {
                        "COLUMN_1": [
                            {"sourceId": "card:5", "originalName": "count"},
                            "$_card:5_name",
                        ]
                    }
                }
            },
        }

        resolver.insert_dashcard_references(dashcard, ("dashcards", 0))

        column = dashcard["visualization_settings"]["visualization"][
            "columnValuesMapping"
        ]["COLUMN_1"]
        assert isinstance(column[0]["sourceId"], PrefixedCardReference)
        assert column[0]["sourceId"].prefix == "card:"
        assert column[1] == "$_card:5_name"

    def test_visualizer_source_without_numeric_id(
        self, resolver: ReferenceResolver
    ) -> None:
        mapping = [{"sourceId": "card:²"}, {"sourceId": "card:5x"}]
        dashcard = {
            "card_id": None,
            "visualization_settings": {
                "visualization": {"columnValuesMapping": {"COLUMN_1": mapping}}
            },
        }

        resolver.insert_dashcard_references(dashcard, ("dashcards", 0))

        assert mapping == [{"sourceId": "card:²"}, {"sourceId": "card:5x"}]
