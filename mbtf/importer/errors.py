"""Importer exceptions."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


class ImporterError(Exception):
    """Base class for errors raised while resolving and rendering entities."""


class ShapeError(ImporterError):
    """A reference site does not have the expected structure.

    Attributes:
        path: Path of the offending attribute, e.g. ("dataset_query", "database")
    """

    def __init__(self, message: str, path: Sequence[str | int] = ()) -> None:
        self.path = tuple(path)
        if self.path:
            message = f"{message} (at {format_path(self.path)})"
        super().__init__(message)


class DefinitionLookupError(ImporterError):
    """A database or collection is not declared, or cannot be found remotely."""


class DuplicateDefinitionError(ImporterError):
    """An entity was declared twice under the same ID."""


class UnresolvedPlaceholderError(ImporterError):
    """A reference placeholder survived in rendered HCL."""


def format_path(path: Sequence[str | int]) -> str:
    """Format an attribute path: ("a", 0, "b") -> "a[0].b"."""
    formatted = ""
    for part in path:
        if isinstance(part, int):
            formatted += f"[{part}]"
        elif formatted:
            formatted += f".{part}"
        else:
            formatted = part
    return formatted


def parse_payload(model: type[M], raw: Any, what: str) -> M:
    """Validate an API payload against its model.

    Raises:
        ShapeError: If an attribute has an unexpected type, with its path
    """
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        error = e.errors()[0]
        raise ShapeError(
            f"Unexpected {what} payload: {error['msg']}", error["loc"]
        ) from e
