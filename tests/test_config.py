"""Tests for configuration loading and validation in config.py."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import ValidationError

from mbtf.config import (
    CollectionMatcher,
    MbtfConfig,
    apply_env_overrides,
    find_config,
    load_config,
)
from mbtf.importer import ExistingCollectionDefinition, ExistingDatabaseDefinition

MINIMAL = """\
metabase:
  endpoint: https://metabase.example.com
  username: admin@example.com
"""


class TestMbtfConfigFromYaml:
    """Tests for MbtfConfig.from_yaml parsing."""

    def test_minimal_valid_config(self) -> None:
        config = MbtfConfig.from_yaml(MINIMAL, environ={})

        assert config.metabase.endpoint == "https://metabase.example.com"
        assert config.metabase.username == "admin@example.com"
        assert config.databases.mapping == []
        assert config.collections.import_missing is False
        assert config.dashboard_filter.dashboard_ids == []
        assert config.output.output_path == Path("./")

    def test_full_config(self) -> None:
        content = """\
metabase:
  endpoint: https://metabase.example.com/api/
  api_key: mb_key
databases:
  mapping:
    - id: 1
      resource_name: warehouse
    - name: Events
      resource_name: events
collections:
  import_missing: true
  mapping:
    - id: root
      resource_name: root
    - id: "12"
      resource_name: marketing
dashboard_filter:
  included_collections:
    - id: 12
    - name: "^Sales"
  excluded_collections:
    - name: "(?i)archive"
  dashboard_name: KPI
output:
  path: ./terraform
  clear: true
  disable_formatting: true
  file_name_prefix: metabase-
  disable_file_name_resource_type: true
"""
        config = MbtfConfig.from_yaml(content, environ={})

        assert config.metabase.endpoint == "https://metabase.example.com"
        assert config.metabase.api_key == "mb_key"
        assert config.databases.mapping[1].to_definition() == ExistingDatabaseDefinition(
            resource_name="events", name="Events"
        )
        assert [m.to_definition() for m in config.collections.mapping] == [
            ExistingCollectionDefinition(resource_name="root", id="root"),
            ExistingCollectionDefinition(resource_name="marketing", id=12),
        ]
        assert config.dashboard_filter.included_collections[0] == CollectionMatcher(id=12)
        assert config.dashboard_filter.dashboard_name == "KPI"

        options = config.output.write_options()
        assert options.clear_output is True
        assert options.disable_formatting is True
        assert options.file_name_prefix == "metabase-"
        assert options.disable_file_name_resource_type is True
        assert config.output.output_path == Path("./terraform")

    def test_empty_config(self) -> None:
        with pytest.raises(ValidationError):
            MbtfConfig.from_yaml("", environ={})

    def test_config_must_be_a_mapping(self) -> None:
        with pytest.raises(ValueError, match="YAML mapping"):
            MbtfConfig.from_yaml("- a\n- b\n", environ={})

    def test_invalid_yaml(self) -> None:
        with pytest.raises(yaml.YAMLError):
            MbtfConfig.from_yaml("metabase: [unclosed", environ={})

    def test_config_is_frozen(self) -> None:
        config = MbtfConfig.from_yaml(MINIMAL, environ={})
        with pytest.raises(ValidationError):
            config.metabase.username = "other"  # type: ignore[misc]


class TestValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize("endpoint", ["metabase.example.com", "ftp://x", "/api"])
    def test_invalid_endpoint(self, endpoint: str) -> None:
        with pytest.raises(ValidationError):
            MbtfConfig.model_validate({"metabase": {"endpoint": endpoint}})

    def test_mapping_needs_id_or_name(self) -> None:
        with pytest.raises(ValidationError, match="needs an id or a name"):
            MbtfConfig.model_validate(
                {
                    "metabase": {"endpoint": "https://mb.example.com"},
                    "databases": {"mapping": [{"resource_name": "warehouse"}]},
                }
            )

    @pytest.mark.parametrize("resource_name", ["1db", "my db", "db.x", ""])
    def test_invalid_resource_name(self, resource_name: str) -> None:
        with pytest.raises(ValidationError, match="resource_name"):
            MbtfConfig.model_validate(
                {
                    "metabase": {"endpoint": "https://mb.example.com"},
                    "collections": {
                        "mapping": [{"id": 1, "resource_name": resource_name}]
                    },
                }
            )

    @pytest.mark.parametrize("value", ["marketing", "²"])
    def test_invalid_collection_id(self, value: str) -> None:
        with pytest.raises(ValidationError, match="Invalid collection id"):
            CollectionMatcher(id=value)

    def test_matcher_needs_id_or_name(self) -> None:
        with pytest.raises(ValidationError, match="need an id or a name"):
            CollectionMatcher()

    def test_invalid_regex(self) -> None:
        with pytest.raises(ValidationError, match="Invalid regular expression"):
            MbtfConfig.model_validate(
                {
                    "metabase": {"endpoint": "https://mb.example.com"},
                    "dashboard_filter": {"dashboard_name": "(unclosed"},
                }
            )


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_overrides_scalar_values(self) -> None:
        config = MbtfConfig.from_yaml(
            MINIMAL,
            environ={
                "MBTF_METABASE_PASSWORD": "secret",
                "MBTF_OUTPUT_PATH": "./out",
                "MBTF_OUTPUT_CLEAR": "true",
                "MBTF_COLLECTIONS_IMPORT_MISSING": "1",
            },
        )

        assert config.metabase.password == "secret"
        assert config.output.path == "./out"
        assert config.output.clear is True
        assert config.collections.import_missing is True

    def test_creates_missing_sections(self) -> None:
        data = apply_env_overrides({}, {"MBTF_METABASE_ENDPOINT": "https://x.example.com"})
        assert data == {"metabase": {"endpoint": "https://x.example.com"}}

    def test_unrelated_variables_are_ignored(self) -> None:
        data = {"metabase": {"endpoint": "https://x.example.com"}}
        assert apply_env_overrides(data, {"MBTF_DATABASES_MAPPING": "[]"}) == data

    def test_input_is_not_modified(self) -> None:
        data = {"output": {"path": "./a"}}
        apply_env_overrides(data, {"MBTF_OUTPUT_PATH": "./b"})
        assert data == {"output": {"path": "./a"}}


class TestFindConfig:
    """Tests for find_config and load_config."""

    def test_finds_in_directory(self) -> None:
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "mbtf.yml"
            config_path.write_text(MINIMAL, encoding="utf-8")

            assert find_config(tmpdir) == config_path.resolve()

    def test_finds_in_parent_directory(self) -> None:
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / ".mbtf.yaml"
            config_path.write_text(MINIMAL, encoding="utf-8")
            nested = Path(tmpdir) / "a" / "b"
            nested.mkdir(parents=True)

            assert find_config(nested) == config_path.resolve()

    def test_load_explicit_path(self) -> None:
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "custom.yml"
            config_path.write_text(MINIMAL, encoding="utf-8")

            assert load_config(config_path).metabase.username == "admin@example.com"

    def test_load_missing_path(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(Path("/nonexistent/mbtf.yml"))

    def test_environment_without_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        config = load_config(
            environ={
                "MBTF_METABASE_ENDPOINT": "https://metabase.example.com/api",
                "MBTF_METABASE_API_KEY": "k",
                "MBTF_OUTPUT_PATH": "./terraform",
            }
        )

        assert config.metabase.endpoint == "https://metabase.example.com"
        assert config.metabase.api_key == "k"
        assert config.output.path == "./terraform"
        assert config.databases.mapping == []

    def test_no_file_and_no_endpoint(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError, match="No mbtf.yml found"):
            load_config(environ={"MBTF_METABASE_API_KEY": "k"})
