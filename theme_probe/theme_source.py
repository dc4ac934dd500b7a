from __future__ import annotations

from typing import Protocol

from theme_probe.errors import NotFoundError, RemoteUnavailableError, ThemeProbeError
from theme_probe.models import PreviewItem, ShopContext, ThemeSummary
from theme_probe.shopify_api import ShopifyApiClient, ShopifyApiError


class ThemeSource(Protocol):
    async def list_themes(self) -> list[ThemeSummary]: ...

    async def list_asset_keys(self, theme_id: str) -> list[str]: ...

    async def get_asset_content(self, theme_id: str, key: str) -> str: ...

    async def list_published_items(self, limit: int) -> list[PreviewItem]: ...


def _translate_error(exc: ShopifyApiError) -> ThemeProbeError:
    if exc.status_code == 404:
        return NotFoundError(message=str(exc))
    return RemoteUnavailableError(message=str(exc))


class ShopifyThemeSource:
    """ThemeSource backed by the Shopify Admin GraphQL API for a single shop."""

    def __init__(self, *, shop: ShopContext, client: ShopifyApiClient | None = None) -> None:
        self._shop = shop
        self._client = client or ShopifyApiClient()

    async def list_themes(self) -> list[ThemeSummary]:
        try:
            themes = await self._client.list_themes(
                shop_domain=self._shop.shop_domain,
                access_token=self._shop.access_token,
            )
        except ShopifyApiError as exc:
            raise _translate_error(exc) from exc
        return [ThemeSummary(id=theme["id"], name=theme["name"], role=theme["role"]) for theme in themes]

    async def list_asset_keys(self, theme_id: str) -> list[str]:
        try:
            return await self._client.list_theme_filenames(
                shop_domain=self._shop.shop_domain,
                access_token=self._shop.access_token,
                theme_id=theme_id,
            )
        except ShopifyApiError as exc:
            raise _translate_error(exc) from exc

    async def get_asset_content(self, theme_id: str, key: str) -> str:
        try:
            return await self._client.load_theme_file_text(
                shop_domain=self._shop.shop_domain,
                access_token=self._shop.access_token,
                theme_id=theme_id,
                filename=key,
            )
        except ShopifyApiError as exc:
            raise _translate_error(exc) from exc

    async def list_published_items(self, limit: int) -> list[PreviewItem]:
        try:
            products = await self._client.list_published_products(
                shop_domain=self._shop.shop_domain,
                access_token=self._shop.access_token,
                limit=limit,
            )
        except ShopifyApiError as exc:
            raise _translate_error(exc) from exc
        return [PreviewItem(id=item["id"], title=item["title"], handle=item["handle"]) for item in products]
