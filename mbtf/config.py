"""Configuration schema for mbtf.

Defines the mbtf.yml configuration file format using Pydantic models.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Self

from mbtf.importer.collection import ExistingCollectionDefinition
from mbtf.importer.database import ExistingDatabaseDefinition
from mbtf.importer.writer import DEFAULT_FILE_NAME_PREFIX, WriteOptions
from mbtf.metabase.constants import ROOT_COLLECTION_ID

# Prefix of environment variables overriding configuration values, e.g.
# MBTF_METABASE_PASSWORD or MBTF_OUTPUT_PATH
ENV_PREFIX = "MBTF_"

_RESOURCE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def _validate_resource_name(v: str) -> str:
    if not _RESOURCE_NAME_PATTERN.match(v):
        raise ValueError(
            f"Invalid resource_name '{v}'. Expected a Terraform identifier "
            "(letters, digits, underscores and dashes, not starting with a digit)."
        )
    return v


def _validate_pattern(v: str | None) -> str | None:
    if not v:
        return v
    try:
        re.compile(v)
    except re.error as e:
        raise ValueError(f"Invalid regular expression '{v}': {e}")
    return v


def _parse_collection_id(v: Any) -> Any:
    if isinstance(v, str) and v.isascii() and v.isdigit():
        return int(v)
    if isinstance(v, str) and v != ROOT_COLLECTION_ID:
        raise ValueError(
            f"Invalid collection id '{v}'. Expected an integer or '{ROOT_COLLECTION_ID}'."
        )
    return v


class MetabaseConfig(BaseModel):
    """Metabase instance and credentials.

    The password (or API key) is best left out of the file: it is then read
    from the environment, the system keychain, or prompted for.
    """

    endpoint: str
    username: str | None = None
    password: str | None = None
    api_key: str | None = None

    model_config = {"frozen": True}

    @field_validator("endpoint")
    @classmethod
    def normalize_endpoint(cls, v: str) -> str:
        """Remove trailing slashes and the `/api` suffix."""
        v = v.strip().rstrip("/")
        if v.endswith("/api"):
            v = v[: -len("/api")]
        if not v:
            raise ValueError("metabase.endpoint cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint '{v}'. Expected an http:// or https:// URL."
            )
        return v


class DatabaseMapping(BaseModel):
    """A database defined manually in Terraform."""

    id: int | None = None
    name: str | None = None
    resource_name: str

    model_config = {"frozen": True}

    @field_validator("resource_name")
    @classmethod
    def validate_resource_name(cls, v: str) -> str:
        return _validate_resource_name(v)

    @model_validator(mode="after")
    def validate_id_or_name(self) -> Self:
        if self.id is None and not self.name:
            raise ValueError(
                f"Database mapping '{self.resource_name}' needs an id or a name"
            )
        return self

    def to_definition(self) -> ExistingDatabaseDefinition:
        return ExistingDatabaseDefinition(
            resource_name=self.resource_name, id=self.id, name=self.name
        )


class CollectionMapping(BaseModel):
    """A collection defined manually in Terraform."""

    id: int | str | None = None
    name: str | None = None
    resource_name: str

    model_config = {"frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v: Any) -> Any:
        return _parse_collection_id(v)

    @field_validator("resource_name")
    @classmethod
    def validate_resource_name(cls, v: str) -> str:
        return _validate_resource_name(v)

    @model_validator(mode="after")
    def validate_id_or_name(self) -> Self:
        if self.id is None and not self.name:
            raise ValueError(
                f"Collection mapping '{self.resource_name}' needs an id or a name"
            )
        return self

    def to_definition(self) -> ExistingCollectionDefinition:
        return ExistingCollectionDefinition(
            resource_name=self.resource_name, id=self.id, name=self.name
        )


class DatabasesConfig(BaseModel):
    """Databases referenced by imported cards."""

    mapping: list[DatabaseMapping] = Field(default_factory=list)

    model_config = {"frozen": True}


class CollectionsConfig(BaseModel):
    """Collections referenced by imported cards and dashboards."""

    import_missing: bool = False  # Generate collections missing from mapping
    mapping: list[CollectionMapping] = Field(default_factory=list)

    model_config = {"frozen": True}


class CollectionMatcher(BaseModel):
    """Matches collections by ID, or by a regular expression on their name."""

    id: int | str | None = None
    name: str | None = None

    model_config = {"frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v: Any) -> Any:
        return _parse_collection_id(v)

    @field_validator("name")
    @classmethod
    def validate_name_pattern(cls, v: str | None) -> str | None:
        return _validate_pattern(v)

    @model_validator(mode="after")
    def validate_id_or_name(self) -> Self:
        if self.id is None and not self.name:
            raise ValueError("Collection filters need an id or a name")
        return self


class DashboardFilterConfig(BaseModel):
    """Selection of the dashboards to import.

    Example:
        dashboard_filter:
          included_collections:
            - id: 12
            - name: "^Sales"
          excluded_collections:
            - name: "(?i)archive"
          dashboard_name: "KPI"
    """

    included_collections: list[CollectionMatcher] = Field(default_factory=list)
    excluded_collections: list[CollectionMatcher] = Field(default_factory=list)
    dashboard_name: str | None = None  # Regex searched in dashboard names
    dashboard_description: str | None = None  # Regex searched in descriptions
    dashboard_ids: list[int] = Field(default_factory=list)  # Overrides filters

    model_config = {"frozen": True}

    @field_validator("dashboard_name", "dashboard_description")
    @classmethod
    def validate_patterns(cls, v: str | None) -> str | None:
        return _validate_pattern(v)


class OutputConfig(BaseModel):
    """Where and how generated files are written."""

    path: str = "./"
    clear: bool = False  # Remove previously generated files first
    disable_formatting: bool = False  # Skip `terraform fmt`
    file_name_prefix: str = DEFAULT_FILE_NAME_PREFIX
    disable_file_name_resource_type: bool = False

    model_config = {"frozen": True}

    @property
    def output_path(self) -> Path:
        """Get path as Path."""
        return Path(self.path)

    def write_options(self) -> WriteOptions:
        return WriteOptions(
            file_name_prefix=self.file_name_prefix,
            disable_file_name_resource_type=self.disable_file_name_resource_type,
            clear_output=self.clear,
            disable_formatting=self.disable_formatting,
        )


class MbtfConfig(BaseModel):
    """
    Root configuration for mbtf.

    This is the schema for mbtf.yml files.

    Example:
        metabase:
          endpoint: https://metabase.example.com
          username: admin@example.com

        databases:
          mapping:
            - id: 1
              resource_name: warehouse

        collections:
          mapping:
            - name: Marketing
              resource_name: marketing

        dashboard_filter:
          included_collections:
            - name: "^Sales"

        output:
          path: ./terraform
          clear: true
    """

    metabase: MetabaseConfig
    databases: DatabasesConfig = Field(default_factory=DatabasesConfig)
    collections: CollectionsConfig = Field(default_factory=CollectionsConfig)
    dashboard_filter: DashboardFilterConfig = Field(
        default_factory=DashboardFilterConfig
    )
    output: OutputConfig = Field(default_factory=OutputConfig)

    model_config = {"frozen": True}

    @classmethod
    def from_yaml(
        cls,
        content: str,
        environ: Mapping[str, str] | None = None,
    ) -> MbtfConfig:
        """Parse config from YAML string, applying environment overrides."""
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a YAML mapping")
        data = apply_env_overrides(data, os.environ if environ is None else environ)
        return cls.model_validate(data)

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        environ: Mapping[str, str] | None = None,
    ) -> MbtfConfig:
        """Load config from a YAML file."""
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        return cls.from_yaml(content, environ)


# Scalar values that can be overridden from the environment, per section
ENV_OVERRIDABLE_KEYS: dict[str, tuple[str, ...]] = {
    "metabase": ("endpoint", "username", "password", "api_key"),
    "collections": ("import_missing",),
    "dashboard_filter": ("dashboard_name", "dashboard_description"),
    "output": (
        "path",
        "clear",
        "disable_formatting",
        "file_name_prefix",
        "disable_file_name_resource_type",
    ),
}


def apply_env_overrides(
    data: dict[str, Any],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """Override scalar values with MBTF_<SECTION>_<KEY> environment variables.

    Lists (mappings, collection filters, dashboard IDs) cannot be overridden.

    Returns:
        A copy of `data` with overrides applied
    """
    data = dict(data)
    for section, keys in ENV_OVERRIDABLE_KEYS.items():
        for key in keys:
            env_name = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
            if env_name not in environ:
                continue

            section_data = data.get(section)
            section_data = dict(section_data) if isinstance(section_data, dict) else {}
            section_data[key] = environ[env_name]
            data[section] = section_data
    return data


# Config file discovery
CONFIG_FILENAMES = ["mbtf.yml", "mbtf.yaml", ".mbtf.yml", ".mbtf.yaml"]


def find_config(start_dir: Path | str | None = None) -> Path | None:
    """
    Find mbtf.yml config file.

    Searches in:
    1. start_dir (if provided)
    2. Current working directory
    3. Parent directories up to root

    Args:
        start_dir: Directory to start search from

    Returns:
        Path to config file, or None if not found
    """
    if start_dir is None:
        start_dir = Path.cwd()
    else:
        start_dir = Path(start_dir)

    current = start_dir.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def has_env_config(environ: Mapping[str, str] | None = None) -> bool:
    """Whether the environment alone names a Metabase instance."""
    environ = os.environ if environ is None else environ
    return bool(environ.get(f"{ENV_PREFIX}METABASE_ENDPOINT"))


def load_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> MbtfConfig:
    """
    Load configuration from file.

    If path is not provided, searches for mbtf.yml in current
    and parent directories. When there is none, the configuration is
    built from MBTF_* environment variables, provided they set at least
    MBTF_METABASE_ENDPOINT.

    Args:
        path: Explicit path to config file
        environ: Environment variables (defaults to os.environ)

    Returns:
        Parsed MbtfConfig

    Raises:
        FileNotFoundError: If no config file found
        ValueError: If config is invalid
    """
    if path is None:
        path = find_config()
        if path is None:
            if has_env_config(environ):
                return MbtfConfig.from_yaml("", environ)
            raise FileNotFoundError(
                "No mbtf.yml found. Create one with 'mbtf init' or specify "
                "path with --config"
            )
    else:
        path = Path(path)

    return MbtfConfig.from_file(path, environ)
