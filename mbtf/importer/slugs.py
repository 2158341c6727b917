"""Slug allocation for Terraform resource names."""

from __future__ import annotations

import re
import unicodedata

# Leaves room for a 4 character suffix ("_001") within 128 characters
MAX_SLUG_LENGTH = 124

# Slug used when a name has no usable character
EMPTY_SLUG = "unnamed"

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def make_slug(name: str) -> str:
    """Turn a display name into a Terraform-safe identifier.

    Accents are transliterated, anything that is not a lower-case ASCII
    letter or digit becomes an underscore.

    Examples:
        >>> make_slug("Ventes par Région")
        'ventes_par_region'
        >>> make_slug("2024 KPIs")
        '_2024_kpis'
    """
    ascii_name = (
        unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    )
    slug = _NON_SLUG_CHARS.sub("_", ascii_name.lower()).strip("_")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("_")

    if not slug:
        return EMPTY_SLUG

    # Terraform identifiers cannot start with a digit
    if slug[0].isdigit():
        slug = f"_{slug}"[:MAX_SLUG_LENGTH]

    return slug


def make_unique_slug(name: str, existing_slugs: set[str]) -> str:
    """Allocate a slug that is not in `existing_slugs`, and claim it.

    The first entity with a given name gets the bare slug, the next ones get
    `_001`, `_002`, ... appended in allocation order.

    Args:
        name: Display name of the entity
        existing_slugs: Slugs already allocated for this kind of entity. The
            returned slug is added to it.

    Returns:
        The allocated slug
    """
    base_slug = make_slug(name)
    slug = base_slug

    suffix = 1
    while slug in existing_slugs:
        slug = f"{base_slug}_{suffix:03d}"
        suffix += 1

    existing_slugs.add(slug)
    return slug
