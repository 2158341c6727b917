"""Metabase API exceptions."""

from __future__ import annotations


class MetabaseAPIError(Exception):
    """Error from the Metabase API, or a response with an unexpected shape."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PaginationError(MetabaseAPIError):
    """A listing endpoint returned fewer items than its reported total."""
