from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

from theme_probe.models import PreviewItem, ThemeSummary


def first_published(items: Sequence[PreviewItem]) -> PreviewItem | None:
    return items[0] if items else None


def theme_numeric_id(theme_id: str) -> str:
    # gid://shopify/OnlineStoreTheme/123 -> 123
    return theme_id.rstrip("/").rsplit("/", 1)[-1]


def build_preview_url(*, shop_domain: str, theme: ThemeSummary, item: PreviewItem | None) -> str | None:
    if item is None:
        return None
    preview_path = quote(f"/products/{item.handle}", safe="")
    return f"https://{shop_domain}/admin/themes/{theme_numeric_id(theme.id)}/editor?previewPath={preview_path}"
