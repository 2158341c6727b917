"""
mbtf: Metabase dashboards as Terraform definitions.

Architecture:
    mbtf.yml → Selection → Import (API → records) → HCL → .tf files

Layers:
    - metabase/: API client and typed views of API objects
    - importer/: Resolution of references between entities and HCL rendering
    - core/: The import run, independent of the CLI
    - cli/: Click commands

Key Concepts:
    - A dashboard pulls in its cards, which pull in tables, fields,
      databases and collections
    - Databases are never generated: they are declared in mbtf.yml
    - References become Terraform expressions, so the definitions can be
      applied to another Metabase instance
"""

__version__ = "0.1.0"
