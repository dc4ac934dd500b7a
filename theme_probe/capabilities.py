from __future__ import annotations

from collections.abc import Iterable, Sequence

from theme_probe.models import SectionSchema


def evaluate(schemas: Sequence[SectionSchema | None], targets: Iterable[str]) -> dict[str, bool]:
    declared: set[str] = set()
    for schema in schemas:
        if schema is not None:
            declared.update(schema.block_types)
    return {target: target in declared for target in targets}


def supports_sections_everywhere(template_keys: Sequence[str]) -> bool:
    return len(template_keys) > 0


def supports_app_blocks(sections_everywhere: bool, section_schemas: Sequence[SectionSchema | None]) -> bool:
    if not sections_everywhere:
        return False
    return any(schema is not None and schema.blocks for schema in section_schemas)
