from __future__ import annotations

import json

import pytest

from theme_probe.errors import ParseError
from theme_probe.templates import main_section_type, parse_template, placed_block_types, section_key


def _template(sections: dict) -> str:
    return json.dumps({"sections": sections, "order": list(sections)})


def test_main_section_type_returns_main_type():
    assert main_section_type(_template({"main": {"type": "main-product"}})) == "main-product"


def test_main_section_type_returns_none_when_main_missing():
    assert main_section_type(_template({"related": {"type": "related-products"}})) is None
    assert main_section_type(json.dumps({"layout": "theme"})) is None
    assert main_section_type(_template({"main": {"settings": {}}})) is None


def test_main_section_type_rejects_invalid_json():
    with pytest.raises(ParseError, match="not valid JSON"):
        main_section_type('{"sections": {"main": ')


def test_main_section_type_rejects_non_object_document():
    with pytest.raises(ParseError, match="must be an object"):
        main_section_type('["main"]')


def test_main_section_type_skips_theme_editor_banner_comment():
    text = "/*\n * IT IS AUTOGENERATED BY THE THEME EDITOR\n */\n" + _template({"main": {"type": "hero"}})

    assert main_section_type(text) == "hero"


def test_placed_block_types_walks_every_section():
    text = _template(
        {
            "main": {
                "type": "main-product",
                "blocks": {
                    "title": {"type": "title"},
                    "rating": {"type": "shopify://apps/reviews/blocks/average-rating/uuid-1"},
                },
            },
            "footer": {"type": "footer", "blocks": {"reviews": {"type": "shopify://apps/reviews/blocks/product-reviews/uuid-1"}}},
        }
    )

    assert placed_block_types(text) == (
        "title",
        "shopify://apps/reviews/blocks/average-rating/uuid-1",
        "shopify://apps/reviews/blocks/product-reviews/uuid-1",
    )


def test_parse_template_builds_document():
    document = parse_template("templates/product.json", _template({"main": {"type": "hero", "blocks": {}}}))

    assert document.key == "templates/product.json"
    assert document.main_section_type == "hero"
    assert document.placed_block_types == ()


def test_section_key_builds_liquid_path():
    assert section_key("hero") == "sections/hero.liquid"
