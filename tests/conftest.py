import asyncio
import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("SHOPIFY_INTERNAL_API_TOKEN", "internal_token")
os.environ.setdefault("PROBE_TEMPLATE_NAMES", "product")
os.environ.setdefault("PROBE_TARGET_BLOCKS", "@app")
os.environ.setdefault("PROBE_REQUIRE_PREVIEW", "false")

from theme_probe.errors import NotFoundError, ThemeProbeError  # noqa: E402
from theme_probe.models import PreviewItem, ThemeSummary  # noqa: E402


class FakeThemeSource:
    """In-memory ThemeSource. Values in ``files`` that are exceptions are raised on fetch."""

    def __init__(
        self,
        *,
        themes=None,
        files=None,
        items=None,
        themes_error: ThemeProbeError | None = None,
        keys_error: ThemeProbeError | None = None,
        items_error: ThemeProbeError | None = None,
        fetch_delay: float = 0.0,
    ) -> None:
        self.themes = (
            themes
            if themes is not None
            else [ThemeSummary(id="gid://shopify/OnlineStoreTheme/2", name="Dawn", role="MAIN")]
        )
        self.files = files or {}
        self.items = items if items is not None else [PreviewItem(id="gid://shopify/Product/1", title="Tee", handle="tee")]
        self.themes_error = themes_error
        self.keys_error = keys_error
        self.items_error = items_error
        self.fetch_delay = fetch_delay
        self.fetched: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_themes(self):
        if self.themes_error:
            raise self.themes_error
        return list(self.themes)

    async def list_asset_keys(self, theme_id):
        if self.keys_error:
            raise self.keys_error
        return list(self.files)

    async def get_asset_content(self, theme_id, key):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.fetch_delay:
                await asyncio.sleep(self.fetch_delay)
            self.fetched.append(key)
            if key not in self.files:
                raise NotFoundError(message=f"Theme file not found: {key}")
            value = self.files[key]
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1

    async def list_published_items(self, limit):
        if self.items_error:
            raise self.items_error
        return list(self.items)[:limit]


@pytest.fixture()
def fake_source_cls():
    return FakeThemeSource
