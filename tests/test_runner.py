"""Tests for the import run."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import click
import pytest

from mbtf.config import MbtfConfig, MetabaseConfig
from mbtf.core import connect, run_import
from mbtf.importer import DefinitionLookupError


def make_config(output: Path, **sections) -> MbtfConfig:
    data = {
        "metabase": {"endpoint": "https://metabase.example.com", "api_key": "k"},
        "databases": {"mapping": [{"id": 1, "resource_name": "warehouse"}]},
        "collections": {"mapping": [{"id": 20, "resource_name": "marketing"}]},
        "dashboard_filter": {"dashboard_ids": [50]},
        "output": {"path": str(output), "disable_formatting": True},
    }
    data.update(sections)
    return MbtfConfig.model_validate(data)


@pytest.fixture
def sales(client):
    client.add_card(5, "Orders total", {"source-table": 10}, collection_id=20)
    client.dashboards[50] = {
        "id": 50,
        "name": "Sales overview",
        "collection_id": 20,
        "dashcards": [{"id": 1, "card_id": 5}],
    }
    return client


class TestRunImport:
    """Tests for run_import."""

    def test_writes_files(self, sales, tmp_path: Path) -> None:
        files, stats, output_path = run_import(make_config(tmp_path), client=sales)

        assert output_path == tmp_path
        assert [f.name for f in files] == [
            "mb-gen-table-public-orders.tf",
            "mb-gen-card-orders-total.tf",
            "mb-gen-dashboard-sales-overview.tf",
        ]
        assert all(f.is_file() for f in files)
        assert (stats.dashboards, stats.cards, stats.tables) == (1, 1, 1)
        assert stats.collections == 0
        assert stats.files == 3

    def test_dry_run_writes_nothing(self, sales, tmp_path: Path) -> None:
        output = tmp_path / "terraform"
        files, stats, _ = run_import(make_config(output), dry_run=True, client=sales)

        assert stats.files == 3
        assert not output.exists()
        assert files[0] == output / "mb-gen-table-public-orders.tf"

    def test_selection_by_collection(self, sales, tmp_path: Path) -> None:
        sales.collection_items["20"] = [
            {"id": 50, "name": "Sales overview", "model": "dashboard"}
        ]
        config = make_config(
            tmp_path,
            dashboard_filter={"included_collections": [{"name": "^Market"}]},
        )

        _, stats, _ = run_import(config, client=sales)

        assert stats.dashboards == 1

    def test_imported_collections_are_counted(self, sales, tmp_path: Path) -> None:
        sales.collections["30"] = {"id": 30, "name": "Sales", "location": "/"}
        sales.dashboards[50]["collection_id"] = 30
        config = make_config(
            tmp_path,
            collections={
                "import_missing": True,
                "mapping": [{"id": 20, "resource_name": "marketing"}],
            },
        )

        files, stats, _ = run_import(config, client=sales)

        assert stats.collections == 1
        assert tmp_path / "mb-gen-collection-sales.tf" in files

    def test_nothing_written_on_failure(self, sales, tmp_path: Path) -> None:
        sales.cards[5]["dataset_query"]["database"] = 2
        output = tmp_path / "terraform"

        with pytest.raises(DefinitionLookupError):
            run_import(make_config(output), client=sales)

        assert not output.exists()


class TestConnect:
    """Tests for connect."""

    def test_api_key_from_config(self) -> None:
        config = MetabaseConfig(endpoint="https://mb.example.com", api_key="k")
        with patch("mbtf.core.runner.MetabaseClient") as client_class:
            connect(config)
        client_class.assert_called_once_with("https://mb.example.com", api_key="k")

    def test_login_with_configured_password(self) -> None:
        config = MetabaseConfig(
            endpoint="https://mb.example.com", username="a@example.com", password="pw"
        )
        with patch("mbtf.core.runner.MetabaseClient") as client_class:
            connect(config)
        client_class.login.assert_called_once_with(
            "https://mb.example.com", "a@example.com", "pw"
        )

    def test_password_is_looked_up(self) -> None:
        config = MetabaseConfig(endpoint="https://mb.example.com", username="a@example.com")
        with patch("mbtf.core.runner.MetabaseClient") as client_class, patch(
            "mbtf.core.runner.get_metabase_password", return_value="stored"
        ) as get_password:
            connect(config)
        assert get_password.call_args.kwargs["prompt_if_missing"] is True
        client_class.login.assert_called_once_with(
            "https://mb.example.com", "a@example.com", "stored"
        )

    def test_stored_api_key(self) -> None:
        config = MetabaseConfig(endpoint="https://mb.example.com")
        with patch("mbtf.core.runner.MetabaseClient") as client_class, patch(
            "mbtf.core.runner.get_metabase_api_key", return_value="stored-key"
        ):
            connect(config)
        client_class.assert_called_once_with("https://mb.example.com", api_key="stored-key")

    def test_no_credentials(self) -> None:
        config = MetabaseConfig(endpoint="https://mb.example.com")
        with patch("mbtf.core.runner.get_metabase_api_key", return_value=None):
            with pytest.raises(click.ClickException, match="No Metabase credentials"):
                connect(config)

    def test_cancelled_password_prompt(self) -> None:
        config = MetabaseConfig(endpoint="https://mb.example.com", username="a@example.com")
        with patch("mbtf.core.runner.get_metabase_password", return_value=None):
            with pytest.raises(click.ClickException, match="No password"):
                connect(config)


class TestClientLifecycle:
    """Tests for closing the client."""

    def test_owned_client_is_closed(self, tmp_path: Path) -> None:
        fake = MagicMock()
        fake.list_collections.return_value = []
        config = make_config(
            tmp_path,
            databases={"mapping": []},
            collections={"mapping": []},
            dashboard_filter={},
        )
        with patch("mbtf.core.runner.connect", return_value=fake):
            files, _, _ = run_import(config)
        assert files == []
        fake.close.assert_called_once()
