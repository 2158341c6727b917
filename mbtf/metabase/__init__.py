"""Metabase API boundary.

This package handles:
- Authentication (session or API key)
- Read-only calls to the endpoints the importer needs
- Typed models for API objects
"""

from mbtf.metabase.client import MetabaseClient
from mbtf.metabase.errors import MetabaseAPIError, PaginationError

__all__ = [
    "MetabaseAPIError",
    "MetabaseClient",
    "PaginationError",
]
