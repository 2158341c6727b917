"""Import of Metabase dashboards as Terraform definitions.

Flow:
    dashboard IDs → ImportContext.import_dashboard → cards → tables, fields,
    databases, collections → HCL → write_files

Key Concepts:
    - Every entity is fetched at most once per run (EntityCache)
    - References to other entities are written as placeholders while
      serializing JSON, then replaced by HCL expressions
    - Slugs, unique per kind of entity, name the Terraform resources
"""

from mbtf.importer.collection import ExistingCollectionDefinition, register_collections
from mbtf.importer.context import EntityCache, EntityKind, ImportContext
from mbtf.importer.database import ExistingDatabaseDefinition, register_databases
from mbtf.importer.errors import (
    DefinitionLookupError,
    DuplicateDefinitionError,
    ImporterError,
    ShapeError,
    UnresolvedPlaceholderError,
)
from mbtf.importer.selection import list_dashboards_to_import
from mbtf.importer.writer import WriteOptions, plan_files, write_files

__all__ = [
    "DefinitionLookupError",
    "DuplicateDefinitionError",
    "EntityCache",
    "EntityKind",
    "ExistingCollectionDefinition",
    "ExistingDatabaseDefinition",
    "ImportContext",
    "ImporterError",
    "ShapeError",
    "UnresolvedPlaceholderError",
    "WriteOptions",
    "list_dashboards_to_import",
    "plan_files",
    "register_collections",
    "register_databases",
    "write_files",
]
