"""Two-phase rendering of payloads containing references.

Phase one, `render_json`, serializes a payload to JSON. Every `Reference` found
in it is written as a placeholder: a JSON string such as
`"!!metabase_card.sales.id!!"`, so the output is still valid JSON.

Phase two, `replace_placeholders`, rewrites the placeholders in the final text
into HCL expressions. JSON being valid HCL object syntax, the result can be
embedded in `jsonencode(...)`.

A placeholder can also end up inside a string that was itself serialized, e.g.
in the JSON-encoded keys of `column_settings`. Its quotes are then escaped
(`\\"!!...!!\\"`), and it is replaced by an interpolation (`${...}`) instead.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mbtf.importer.errors import UnresolvedPlaceholderError
from mbtf.importer.records import PLACEHOLDER_MARKER, Reference

# Characters of a JSON-escaped string: anything but quotes and backslashes, or
# an escape sequence
_ESCAPED_CHARS = r'(?:[^"\\]|\\.)*?'


class PlaceholderEncoder(json.JSONEncoder):
    """JSON encoder writing references as placeholders."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Reference):
            return o.placeholder()
        return super().default(o)


def render_json(tree: Any, prefix: str = "  ") -> str:
    """Serialize a payload to indented JSON, with references as placeholders.

    Keys are sorted so output is stable across runs. Lines after the first
    are prefixed with `prefix`, to nest the JSON in an HCL block. HCL template
    sequences in strings are escaped.

    Args:
        tree: JSON-compatible value, possibly holding `Reference`s
        prefix: Indentation added to continuation lines

    Returns:
        JSON text
    """
    text = json.dumps(
        tree,
        cls=PlaceholderEncoder,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    )
    text = escape_template_sequences(text)
    return text.replace("\n", f"\n{prefix}")


def encode_compact(value: Any) -> str:
    """Serialize a value the way Metabase encodes arrays used as map keys."""
    return json.dumps(
        value,
        cls=PlaceholderEncoder,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def escape_template_sequences(text: str) -> str:
    """Escape `${` and `%{`, which HCL would evaluate inside strings."""
    return text.replace("${", "$${").replace("%{", "%%{")


def hcl_string(value: str) -> str:
    """Quote a string as an HCL literal."""
    return escape_template_sequences(json.dumps(value, ensure_ascii=False))


def _unescape(raw: str, times: int) -> str:
    for _ in range(times):
        raw = json.loads(f'"{raw}"')
    return raw


def _field_expression(match: re.Match[str], times: int) -> str:
    # The index is already a quoted HCL string once unescaped
    table, raw_index = match.group(1), match.group(2)
    return f"metabase_table.{table}.fields[{_unescape(raw_index, times)}]"


@dataclass(frozen=True)
class PlaceholderRule:
    """Rewrites one kind of placeholder."""

    name: str
    pattern: re.Pattern[str]
    replacement: str | Callable[[re.Match[str]], str]

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


_M = re.escape(PLACEHOLDER_MARKER)

# Order matters: double-encoded placeholders are rewritten first, and quoted
# placeholders before the ones embedded in a longer string.
PLACEHOLDER_RULES: tuple[PlaceholderRule, ...] = (
    PlaceholderRule(
        "field_in_string",
        re.compile(
            rf'\\"{_M}metabase_table\.(\w+)\.fields\[({_ESCAPED_CHARS})\]{_M}\\"'
        ),
        lambda m: "${" + _field_expression(m, 2) + "}",
    ),
    PlaceholderRule(
        "field",
        re.compile(rf'"{_M}metabase_table\.(\w+)\.fields\[({_ESCAPED_CHARS})\]{_M}"'),
        lambda m: _field_expression(m, 1),
    ),
    PlaceholderRule(
        "card",
        re.compile(rf'"{_M}(metabase_card\.\w+\.id){_M}"'),
        r"\1",
    ),
    PlaceholderRule(
        "table",
        re.compile(rf'"{_M}(metabase_table\.\w+\.id){_M}"'),
        r"\1",
    ),
    PlaceholderRule(
        "database",
        re.compile(rf'"{_M}(metabase_database\.\w+\.id){_M}"'),
        r"\1",
    ),
    PlaceholderRule(
        "collection",
        re.compile(rf'"{_M}(tonumber\(metabase_collection\.\w+\.id\)){_M}"'),
        r"\1",
    ),
    PlaceholderRule(
        "card_in_string",
        re.compile(rf"{_M}(metabase_card\.\w+\.id){_M}"),
        r"${\1}",
    ),
)

# Any placeholder left after all rules ran
_LEFTOVER_PATTERN = re.compile(rf"{_M}(?:tonumber\()?metabase_\w+\.\w+\.")


def replace_placeholders(text: str) -> str:
    """Rewrite every placeholder in `text` into an HCL expression.

    Text without placeholders is returned unchanged.
    """
    for rule in PLACEHOLDER_RULES:
        text = rule.apply(text)
    return text


def find_unresolved_placeholders(text: str) -> list[str]:
    """List the lines of `text` still holding a placeholder."""
    return [line.strip() for line in text.splitlines() if _LEFTOVER_PATTERN.search(line)]


def finalize_hcl(text: str, owner: str) -> str:
    """Replace placeholders, and check none of them survived.

    Args:
        text: HCL text produced with `render_json`
        owner: Description of the rendered resource, for error messages

    Raises:
        UnresolvedPlaceholderError: If a placeholder could not be replaced
    """
    hcl = replace_placeholders(text)
    leftovers = find_unresolved_placeholders(hcl)
    if leftovers:
        raise UnresolvedPlaceholderError(
            f"Unresolved references in {owner}: {'; '.join(leftovers)}"
        )
    return hcl
