from __future__ import annotations

from typing import Any

import httpx

from theme_probe.config import settings

_THEME_FILES_PAGE_SIZE = 250
_THEME_FILES_MAX_PAGES = 40
_THEMES_PAGE_SIZE = 50
_THEME_FIELDS = ("id", "name", "role")
_PRODUCT_FIELDS = ("id", "title", "handle")
_TEXT_BODY_TYPENAME = "OnlineStoreThemeFileBodyText"


class ShopifyApiError(RuntimeError):
    """Failed Admin API call. ``status_code`` follows HTTP semantics (404 missing, 429 throttled)."""

    def __init__(self, *, message: str, status_code: int = 502, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


def _require_fields(node: Any, fields: tuple[str, ...], *, query_name: str, entity: str) -> dict[str, str]:
    if not isinstance(node, dict):
        raise ShopifyApiError(message=f"{query_name} response is missing {entity} data.")
    row: dict[str, str] = {}
    for field in fields:
        value = node.get(field)
        if not isinstance(value, str) or not value:
            raise ShopifyApiError(message=f"{query_name} response is missing {entity}.{field}.")
        row[field] = value
    return row


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ShopifyApiClient:
    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = settings.SHOPIFY_REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    async def list_themes(self, *, shop_domain: str, access_token: str) -> list[dict[str, str]]:
        query = """
        query themesForCapabilityProbe($first: Int!) {
            themes(first: $first) {
                nodes {
                    id
                    name
                    role
                }
            }
        }
        """
        response = await self._admin_graphql(
            shop_domain=shop_domain,
            access_token=access_token,
            payload={"query": query, "variables": {"first": _THEMES_PAGE_SIZE}},
        )
        raw_nodes = (response.get("themes") or {}).get("nodes")
        if not isinstance(raw_nodes, list):
            raise ShopifyApiError(message="themes query response is invalid.")
        return [_require_fields(node, _THEME_FIELDS, query_name="themes", entity="theme") for node in raw_nodes]

    async def list_theme_filenames(
        self,
        *,
        shop_domain: str,
        access_token: str,
        theme_id: str,
    ) -> list[str]:
        query = """
        query themeFilenames($id: ID!, $first: Int!, $after: String) {
            theme(id: $id) {
                files(first: $first, after: $after) {
                    nodes {
                        filename
                    }
                    pageInfo {
                        hasNextPage
                        endCursor
                    }
                    userErrors {
                        field
                        message
                    }
                }
            }
        }
        """
        filenames: list[str] = []
        after: str | None = None
        for _ in range(_THEME_FILES_MAX_PAGES):
            response = await self._admin_graphql(
                shop_domain=shop_domain,
                access_token=access_token,
                payload={
                    "query": query,
                    "variables": {"id": theme_id, "first": _THEME_FILES_PAGE_SIZE, "after": after},
                },
            )
            files = self._coerce_theme_files(response=response, theme_id=theme_id)
            for node in files["nodes"]:
                if not isinstance(node, dict):
                    continue
                filename = node.get("filename")
                if isinstance(filename, str) and filename:
                    filenames.append(filename)

            page_info = files.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return filenames
            end_cursor = page_info.get("endCursor")
            if not isinstance(end_cursor, str) or not end_cursor:
                raise ShopifyApiError(message="theme files query response is missing pageInfo.endCursor.")
            after = end_cursor

        raise ShopifyApiError(
            message=f"Theme {theme_id} lists more than {_THEME_FILES_PAGE_SIZE * _THEME_FILES_MAX_PAGES} files.",
            status_code=502,
        )

    async def load_theme_file_text(
        self,
        *,
        shop_domain: str,
        access_token: str,
        theme_id: str,
        filename: str,
    ) -> str:
        query = """
        query themeFileByName($id: ID!, $filenames: [String!]!) {
            theme(id: $id) {
                files(first: 1, filenames: $filenames) {
                    nodes {
                        filename
                        body {
                            __typename
                            ... on OnlineStoreThemeFileBodyText {
                                content
                            }
                        }
                    }
                    userErrors {
                        field
                        message
                    }
                }
            }
        }
        """
        response = await self._admin_graphql(
            shop_domain=shop_domain,
            access_token=access_token,
            payload={"query": query, "variables": {"id": theme_id, "filenames": [filename]}},
        )
        files = self._coerce_theme_files(response=response, theme_id=theme_id)
        node = next(
            (item for item in files["nodes"] if isinstance(item, dict) and item.get("filename") == filename),
            None,
        )
        if node is None:
            raise ShopifyApiError(message=f"Theme file not found: {filename}", status_code=404)

        body = node.get("body")
        typename = body.get("__typename") if isinstance(body, dict) else None
        if typename != _TEXT_BODY_TYPENAME:
            raise ShopifyApiError(
                message=f"Theme file {filename} is not text-backed (typename={typename}).",
                status_code=409,
            )
        content = body.get("content")
        if not isinstance(content, str):
            raise ShopifyApiError(message=f"Theme file body content is missing for {filename}.")
        return content

    @staticmethod
    def _coerce_theme_files(*, response: dict[str, Any], theme_id: str) -> dict[str, Any]:
        theme = response.get("theme")
        if not isinstance(theme, dict):
            raise ShopifyApiError(message=f"Theme not found for themeId={theme_id}.", status_code=404)
        files = theme.get("files")
        if not isinstance(files, dict):
            raise ShopifyApiError(message="theme files query response is invalid.")
        user_errors = files.get("userErrors") or []
        if user_errors:
            messages = "; ".join(str(error.get("message")) for error in user_errors)
            raise ShopifyApiError(message=f"theme files query failed: {messages}", status_code=409)
        nodes = files.get("nodes")
        if not isinstance(nodes, list):
            raise ShopifyApiError(message="theme files query response is missing nodes.")
        return files

    async def list_published_products(
        self,
        *,
        shop_domain: str,
        access_token: str,
        limit: int = 1,
    ) -> list[dict[str, str]]:
        query = """
        query publishedProducts($first: Int!, $query: String) {
            products(first: $first, query: $query) {
                nodes {
                    id
                    title
                    handle
                }
            }
        }
        """
        response = await self._admin_graphql(
            shop_domain=shop_domain,
            access_token=access_token,
            payload={"query": query, "variables": {"first": limit, "query": "published_status:published"}},
        )
        nodes = (response.get("products") or {}).get("nodes")
        if not isinstance(nodes, list):
            raise ShopifyApiError(message="products query response is invalid.")
        return [_require_fields(node, _PRODUCT_FIELDS, query_name="products", entity="product") for node in nodes]

    async def _admin_graphql(
        self,
        *,
        shop_domain: str,
        access_token: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        url = f"https://{shop_domain}/admin/api/{settings.SHOPIFY_ADMIN_API_VERSION}/graphql.json"
        body = await self._post_json(
            url=url,
            payload=payload,
            headers={"Content-Type": "application/json", "X-Shopify-Access-Token": access_token},
        )
        errors = body.get("errors")
        if errors:
            if isinstance(errors, list):
                codes = {str((error.get("extensions") or {}).get("code")) for error in errors if isinstance(error, dict)}
                messages = "; ".join(
                    str(error.get("message")) if isinstance(error, dict) else str(error) for error in errors
                )
            else:
                codes, messages = set(), str(errors)
            if "THROTTLED" in codes:
                raise ShopifyApiError(message=f"Admin GraphQL throttled for {shop_domain}: {messages}", status_code=429)
            raise ShopifyApiError(message=f"Admin GraphQL errors for {shop_domain}: {messages}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise ShopifyApiError(message=f"Admin GraphQL response for {shop_domain} is missing data.")
        return data

    async def _post_json(
        self,
        *,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            raise ShopifyApiError(message=f"Network error while calling Shopify: {exc}") from exc

        if response.status_code in (401, 403):
            raise ShopifyApiError(
                message=f"Shopify rejected the access token ({response.status_code}).",
                status_code=401,
            )
        if response.status_code == 429:
            raise ShopifyApiError(
                message="Shopify API rate limit exceeded.",
                status_code=429,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.status_code >= 400:
            raise ShopifyApiError(message=f"Shopify API call failed ({response.status_code}): {response.text}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ShopifyApiError(message="Shopify API returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise ShopifyApiError(message="Shopify API response must be a JSON object.")
        return body
