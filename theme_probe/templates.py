from __future__ import annotations

import json
from typing import Any

from theme_probe.errors import ParseError
from theme_probe.models import TemplateDocument


def _strip_leading_comment(json_text: str) -> str:
    # Shopify prepends a /* ... */ banner to JSON templates saved by the theme editor.
    stripped = json_text.lstrip()
    if not stripped.startswith("/*"):
        return json_text
    end_idx = stripped.find("*/", 2)
    if end_idx == -1:
        raise ParseError(message="Template has an unterminated leading comment")
    return stripped[end_idx + 2 :]


def _load_template(json_text: str) -> dict[str, Any]:
    try:
        document = json.loads(_strip_leading_comment(json_text))
    except ValueError as exc:
        raise ParseError(message=f"Template is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ParseError(message="Template JSON must be an object")
    return document


def _sections(document: dict[str, Any]) -> dict[str, Any]:
    sections = document.get("sections")
    return sections if isinstance(sections, dict) else {}


def _main_section_type(document: dict[str, Any]) -> str | None:
    main = _sections(document).get("main")
    if not isinstance(main, dict):
        return None
    section_type = main.get("type")
    if not isinstance(section_type, str) or not section_type.strip():
        return None
    return section_type.strip()


def _placed_block_types(document: dict[str, Any]) -> tuple[str, ...]:
    block_types: list[str] = []
    for section in _sections(document).values():
        if not isinstance(section, dict):
            continue
        blocks = section.get("blocks")
        if not isinstance(blocks, dict):
            continue
        for block in blocks.values():
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if isinstance(block_type, str) and block_type:
                block_types.append(block_type)
    return tuple(block_types)


def main_section_type(json_text: str) -> str | None:
    return _main_section_type(_load_template(json_text))


def placed_block_types(json_text: str) -> tuple[str, ...]:
    return _placed_block_types(_load_template(json_text))


def parse_template(key: str, json_text: str) -> TemplateDocument:
    document = _load_template(json_text)
    return TemplateDocument(
        key=key,
        main_section_type=_main_section_type(document),
        placed_block_types=_placed_block_types(document),
    )


def section_key(section_type: str) -> str:
    return f"sections/{section_type}.liquid"
