"""Cards (questions and models) and their `metabase_card` resources."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from mbtf.importer.context import EntityKind
from mbtf.importer.errors import parse_payload
from mbtf.importer.placeholders import finalize_hcl, render_json
from mbtf.importer.records import ImportedCard
from mbtf.importer.references import ReferenceResolver
from mbtf.metabase.constants import (
    DEFINING_CARD_ATTRIBUTES,
    PARAMETERS_ATTRIBUTE,
    VISUALIZATION_SETTINGS_ATTRIBUTE,
)
from mbtf.metabase.models import Card

if TYPE_CHECKING:
    from mbtf.importer.context import ImportContext


def load_card(ctx: ImportContext, card_id: int) -> ImportedCard:
    """Fetch a card, resolve everything it references, and render it.

    The slug is allocated before resolving references, so a card always gets
    its slug before the cards it depends on. It is released again if the card
    cannot be imported.
    """
    raw = ctx.client.get_card(card_id)
    card = parse_payload(Card, raw, f"card {card_id}")
    slug = ctx.allocate_slug(EntityKind.CARD, card.name)

    try:
        hcl = render_card(make_card_body(ctx, raw), slug)
    except Exception:
        ctx.release_slug(EntityKind.CARD, slug)
        raise

    record = ImportedCard(card=card, slug=slug, hcl=hcl)
    ctx.log(f"Imported card {card_id} as {record.expression}")
    return record


def make_card_body(ctx: ImportContext, raw: dict[str, Any]) -> dict[str, Any]:
    """Keep the defining attributes of a card and resolve its references.

    Args:
        ctx: Import context
        raw: Card payload, as returned by the API

    Returns:
        The filtered payload, holding resolution records in place of IDs
    """
    body = copy.deepcopy(
        {k: v for k, v in raw.items() if k in DEFINING_CARD_ATTRIBUTES}
    )

    resolver = ReferenceResolver(ctx)
    resolver.insert_database_reference(body)
    resolver.insert_collection_reference(body)
    resolver.rewrite(body)

    visualization_settings = body.get(VISUALIZATION_SETTINGS_ATTRIBUTE)
    resolver.insert_column_settings_references(
        visualization_settings, (VISUALIZATION_SETTINGS_ATTRIBUTE,)
    )
    resolver.insert_parameter_references(
        body.get(PARAMETERS_ATTRIBUTE), (PARAMETERS_ATTRIBUTE,)
    )
    resolver.insert_visualization_card_references(
        visualization_settings, (VISUALIZATION_SETTINGS_ATTRIBUTE,)
    )

    return body


def render_card(body: dict[str, Any], slug: str) -> str:
    hcl = (
        f'resource "metabase_card" "{slug}" {{\n'
        f"  json = jsonencode({render_json(body)})\n"
        "}\n"
    )
    return finalize_hcl(hcl, f"card {slug}")
