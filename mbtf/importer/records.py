"""Resolution records: the result of importing one Metabase entity.

A record holds the typed API object, the slug used as the Terraform resource
name, and the rendered HCL when the entity gets its own file. Records also act
as references: when a record is found in a payload being serialized, it is
written as a placeholder that `replace_placeholders` turns into an HCL
expression.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from mbtf.metabase.models import Card, Collection, Dashboard, Database, Table
from mbtf.metabase.models import Field as MetabaseField

# Delimits the HCL expression in a placeholder string
PLACEHOLDER_MARKER = "!!"


class Reference(ABC):
    """Something that serializes as a reference to a Terraform object."""

    @property
    @abstractmethod
    def expression(self) -> str:
        """HCL expression evaluating to the remote ID."""

    def placeholder(self) -> str:
        """Sentinel string standing for `expression` in serialized JSON."""
        return f"{PLACEHOLDER_MARKER}{self.expression}{PLACEHOLDER_MARKER}"


@dataclass(frozen=True)
class ImportedDatabase(Reference):
    """A database declared in the configuration, defined manually in Terraform."""

    resource_type: ClassVar[str] = "metabase_database"

    database: Database
    slug: str
    hcl: str | None = None

    @property
    def expression(self) -> str:
        return f"{self.resource_type}.{self.slug}.id"


@dataclass(frozen=True)
class ImportedCollection(Reference):
    """A collection, either declared in the configuration or imported."""

    resource_type: ClassVar[str] = "metabase_collection"
    kind: ClassVar[str] = "collection"

    collection: Collection
    slug: str
    hcl: str | None = None

    @property
    def resource_reference(self) -> str:
        """Reference to the resource ID, a string in the provider schema."""
        return f"{self.resource_type}.{self.slug}.id"

    @property
    def expression(self) -> str:
        # Cards hold the collection ID as a number
        return f"tonumber({self.resource_reference})"


@dataclass(frozen=True)
class ImportedTable(Reference):
    """A table imported as a `metabase_table` resource."""

    resource_type: ClassVar[str] = "metabase_table"
    kind: ClassVar[str] = "table"

    table: Table
    slug: str
    hcl: str | None = None

    @property
    def expression(self) -> str:
        return f"{self.resource_type}.{self.slug}.id"


@dataclass(frozen=True)
class ImportedField(Reference):
    """A field, referenced through the `fields` attribute of its table."""

    field: MetabaseField
    table: ImportedTable

    @property
    def slug(self) -> str:
        return self.table.slug

    @property
    def expression(self) -> str:
        name = json.dumps(self.field.name, ensure_ascii=False)
        return f"{self.table.resource_type}.{self.table.slug}.fields[{name}]"


@dataclass(frozen=True)
class ImportedCard(Reference):
    """A card imported as a `metabase_card` resource."""

    resource_type: ClassVar[str] = "metabase_card"
    kind: ClassVar[str] = "card"

    card: Card
    slug: str
    hcl: str | None = None

    @property
    def expression(self) -> str:
        return f"{self.resource_type}.{self.slug}.id"


@dataclass(frozen=True)
class PrefixedCardReference(Reference):
    """A card ID embedded in a string after a prefix, e.g. `card:12`."""

    card: ImportedCard
    prefix: str

    @property
    def expression(self) -> str:
        return self.card.expression

    def placeholder(self) -> str:
        return f"{self.prefix}{self.card.placeholder()}"


@dataclass(frozen=True)
class ImportedDashboard(Reference):
    """A dashboard imported as a `metabase_dashboard` resource.

    Attributes:
        tab_ids: Maps server-assigned tab IDs to the sentinel IDs used in the
            generated definition
    """

    resource_type: ClassVar[str] = "metabase_dashboard"
    kind: ClassVar[str] = "dashboard"

    dashboard: Dashboard
    slug: str
    hcl: str | None = None
    tab_ids: dict[int, int] = field(default_factory=dict)

    @property
    def expression(self) -> str:
        return f"{self.resource_type}.{self.slug}.id"
