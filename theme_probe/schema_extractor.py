"""Extraction of the ``{% schema %}`` block from Liquid section markup.

The scanner walks the markup tag by tag. A ``{% schema %}`` without a
following ``{% endschema %}`` is an error. Tags inside ``{% raw %}`` and
``{% comment %}`` regions are ignored.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from theme_probe.errors import ParseError
from theme_probe.models import SchemaBlock, SectionSchema

_TAG_START = "{%"
_TAG_END = "%}"
_SCHEMA_TAG = "schema"
_END_SCHEMA_TAG = "endschema"
_OPAQUE_REGIONS = {"raw": "endraw", "comment": "endcomment"}


@dataclass(frozen=True)
class LiquidTag:
    name: str
    start: int
    end: int


def _tag_name(inner: str) -> str:
    inner = inner.strip()
    # Whitespace control: {%- tag -%}
    if inner.startswith("-"):
        inner = inner[1:]
    if inner.endswith("-"):
        inner = inner[:-1]
    parts = inner.split(maxsplit=1)
    return parts[0] if parts else ""


def iter_liquid_tags(markup: str) -> Iterator[LiquidTag]:
    """Yield every ``{% ... %}`` tag in order. Stops at an unterminated tag."""
    pos = 0
    while True:
        start = markup.find(_TAG_START, pos)
        if start == -1:
            return
        close = markup.find(_TAG_END, start + len(_TAG_START))
        if close == -1:
            return
        end = close + len(_TAG_END)
        yield LiquidTag(name=_tag_name(markup[start + len(_TAG_START) : close]), start=start, end=end)
        pos = end


def _find_schema_body(markup: str) -> str | None:
    schema_tag: LiquidTag | None = None
    opaque_end: str | None = None
    opaque_depth = 0

    for tag in iter_liquid_tags(markup):
        if schema_tag is not None:
            if tag.name == _END_SCHEMA_TAG:
                return markup[schema_tag.end : tag.start]
            continue

        if opaque_end is not None:
            if tag.name == opaque_end:
                opaque_depth -= 1
                if opaque_depth == 0:
                    opaque_end = None
            elif opaque_end == "endcomment" and tag.name == "comment":
                opaque_depth += 1
            continue

        if tag.name in _OPAQUE_REGIONS:
            opaque_end = _OPAQUE_REGIONS[tag.name]
            opaque_depth = 1
        elif tag.name == _SCHEMA_TAG:
            schema_tag = tag

    if schema_tag is not None:
        raise ParseError(message="Section schema block is missing its {% endschema %} tag")
    return None


def _coerce_blocks(raw_blocks: Any) -> tuple[SchemaBlock, ...]:
    if raw_blocks is None:
        return ()
    if not isinstance(raw_blocks, list):
        raise ParseError(message="Section schema 'blocks' must be a list")
    blocks: list[SchemaBlock] = []
    for index, raw_block in enumerate(raw_blocks):
        if not isinstance(raw_block, dict):
            raise ParseError(message=f"Section schema block #{index} must be an object")
        block_type = raw_block.get("type")
        if not isinstance(block_type, str) or not block_type:
            raise ParseError(message=f"Section schema block #{index} is missing a string 'type'")
        blocks.append(SchemaBlock(type=block_type))
    return tuple(blocks)


def extract_schema(raw_markup: str, source: str | None = None) -> SectionSchema | None:
    """Return the first schema declared in ``raw_markup``, or ``None`` if it has none.

    Raises ``ParseError`` when a schema block is present but unterminated,
    not valid JSON, or declares malformed ``blocks``.
    """
    body = _find_schema_body(raw_markup)
    if body is None:
        return None
    try:
        schema = json.loads(body)
    except ValueError as exc:
        raise ParseError(message=f"Section schema is not valid JSON: {exc}") from exc
    if not isinstance(schema, dict):
        raise ParseError(message="Section schema must be a JSON object")
    return SectionSchema(blocks=_coerce_blocks(schema.get("blocks")), source=source)
