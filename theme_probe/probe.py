from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence

from theme_probe.assets import AssetFetcher
from theme_probe.capabilities import evaluate, supports_app_blocks, supports_sections_everywhere
from theme_probe.config import settings
from theme_probe.errors import NotFoundError, ParseError, ProbeCancelledError, ThemeProbeError
from theme_probe.models import (
    Asset,
    CapabilityReport,
    Outcome,
    ProbeIssue,
    ProbeResult,
    ProbeStage,
    ProbeStatus,
    SchemaBlock,
    SectionSchema,
    ShopContext,
    TemplateDocument,
)
from theme_probe.preview import build_preview_url, first_published
from theme_probe.schema_extractor import extract_schema
from theme_probe.shopify_api import ShopifyApiClient
from theme_probe.templates import parse_template, section_key
from theme_probe.theme_source import ShopifyThemeSource, ThemeSource
from theme_probe.themes import resolve_published

logger = logging.getLogger(__name__)


class ProbeOrchestrator:
    """Runs the theme capability probe for one shop.

    Only theme resolution is fatal. A failed asset listing, or a failure on
    a single template, section or schema, is recorded as an issue and the
    probe carries on with what it could read.
    """

    def __init__(
        self,
        source: ThemeSource,
        *,
        template_keys: Sequence[str],
        max_concurrency: int = 4,
        timeout_seconds: float = 30.0,
        require_preview: bool = False,
    ) -> None:
        self._source = source
        self._template_keys = list(dict.fromkeys(template_keys))
        self._fetcher = AssetFetcher(source, max_concurrency=max_concurrency)
        self._timeout_seconds = timeout_seconds
        self._require_preview = require_preview

    @classmethod
    def from_settings(cls, source: ThemeSource) -> "ProbeOrchestrator":
        return cls(
            source,
            template_keys=settings.template_keys,
            max_concurrency=settings.PROBE_MAX_CONCURRENT_FETCHES,
            timeout_seconds=settings.PROBE_TIMEOUT_SECONDS,
            require_preview=settings.PROBE_REQUIRE_PREVIEW,
        )

    async def probe(
        self,
        shop: ShopContext,
        *,
        targets: Sequence[str] = (),
        timeout_seconds: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ProbeResult:
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        run_task = asyncio.create_task(self._run(shop, list(dict.fromkeys(targets))))
        waiters: set[asyncio.Task] = {run_task}
        cancel_task: asyncio.Task | None = None
        if cancel_event is not None:
            cancel_task = asyncio.create_task(cancel_event.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await run_task
            raise
        finally:
            if cancel_task is not None:
                cancel_task.cancel()

        if run_task in done:
            return run_task.result()

        run_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await run_task
        reason = "cancelled" if cancel_event is not None and cancel_event.is_set() else f"timed out after {timeout}s"
        logger.warning("theme_probe.cancelled", extra={"shop_domain": shop.shop_domain, "reason": reason})
        return ProbeResult(
            status=ProbeStatus.CANCELLED,
            error=ProbeCancelledError(message=f"Theme probe {reason}."),
        )

    async def _run(self, shop: ShopContext, targets: list[str]) -> ProbeResult:
        issues: list[ProbeIssue] = []

        self._enter(ProbeStage.RESOLVING_THEME, shop)
        try:
            themes = await self._source.list_themes()
        except ThemeProbeError as exc:
            return self._failed(ProbeStage.RESOLVING_THEME, shop, exc)
        try:
            theme = resolve_published(themes)
        except NotFoundError as exc:
            return ProbeResult(status=ProbeStatus.NOT_FOUND, report=CapabilityReport.empty(), error=exc)

        self._enter(ProbeStage.FETCHING_TEMPLATES, shop)
        available_keys: set[str] | None
        try:
            available_keys = set(await self._source.list_asset_keys(theme.id))
        except ThemeProbeError as exc:
            # Without a listing every configured key is fetched directly.
            self._record(issues, ProbeStage.FETCHING_TEMPLATES, None, exc)
            available_keys = None
        if available_keys is None:
            template_outcomes = [
                outcome
                for outcome in await self._fetcher.fetch_many(theme.id, self._template_keys)
                if not isinstance(outcome.error, NotFoundError)
            ]
            template_keys = [outcome.key for outcome in template_outcomes if outcome.ok]
        else:
            template_keys = [key for key in self._template_keys if key in available_keys]
            template_outcomes = list(await self._fetcher.fetch_many(theme.id, template_keys))
        template_assets = self._collect(ProbeStage.FETCHING_TEMPLATES, template_outcomes, issues)

        self._enter(ProbeStage.PARSING_TEMPLATES, shop)
        templates: list[TemplateDocument] = []
        for asset in template_assets:
            try:
                templates.append(parse_template(asset.key, asset.content or ""))
            except ParseError as exc:
                self._record(issues, ProbeStage.PARSING_TEMPLATES, asset.key, exc)

        self._enter(ProbeStage.FETCHING_SECTIONS, shop)
        referenced_keys: list[str] = []
        section_keys: list[str] = []
        for template in templates:
            if template.main_section_type is None:
                continue
            key = section_key(template.main_section_type)
            if key in referenced_keys:
                continue
            referenced_keys.append(key)
            if available_keys is not None and key not in available_keys:
                self._record(
                    issues,
                    ProbeStage.FETCHING_SECTIONS,
                    key,
                    NotFoundError(message=f"{template.key} references missing section {key}"),
                )
                continue
            section_keys.append(key)
        section_assets = self._collect(
            ProbeStage.FETCHING_SECTIONS,
            await self._fetcher.fetch_many(theme.id, section_keys),
            issues,
        )

        self._enter(ProbeStage.EXTRACTING_SCHEMAS, shop)
        section_schemas: list[SectionSchema | None] = []
        sections_read = 0
        for asset in section_assets:
            try:
                section_schemas.append(extract_schema(asset.content or "", source=asset.key))
            except ParseError as exc:
                self._record(issues, ProbeStage.EXTRACTING_SCHEMAS, asset.key, exc)
                section_schemas.append(None)
            else:
                sections_read += 1

        self._enter(ProbeStage.EVALUATING, shop)
        sections_everywhere = supports_sections_everywhere(template_keys)
        app_blocks = supports_app_blocks(sections_everywhere, section_schemas)
        placements = [
            SectionSchema(
                blocks=tuple(SchemaBlock(type=block_type) for block_type in template.placed_block_types),
                source=template.key,
            )
            for template in templates
            if template.placed_block_types
        ]
        contains_block: dict[str, bool] | None = None
        # Null when every referenced section was unreadable and nothing is placed.
        if templates and (sections_read or not referenced_keys or placements):
            contains_block = evaluate([*section_schemas, *placements], targets)

        self._enter(ProbeStage.RESOLVING_PREVIEW, shop)
        status = ProbeStatus.COMPLETED
        error: ThemeProbeError | None = None
        try:
            items = await self._source.list_published_items(1)
        except ThemeProbeError as exc:
            self._record(issues, ProbeStage.RESOLVING_PREVIEW, None, exc)
            items = []
        item = first_published(items)
        if item is None and self._require_preview:
            status = ProbeStatus.NOT_FOUND
            error = NotFoundError(message="No published product is available for the theme preview.")

        self._enter(ProbeStage.DONE, shop)
        report = CapabilityReport(
            theme=theme,
            supports_sections_everywhere=sections_everywhere,
            supports_app_blocks=app_blocks,
            contains_block=contains_block,
            preview_url=build_preview_url(shop_domain=shop.shop_domain, theme=theme, item=item),
        )
        return ProbeResult(status=status, report=report, issues=tuple(issues), error=error)

    @staticmethod
    def _enter(stage: ProbeStage, shop: ShopContext) -> None:
        logger.debug("theme_probe.stage", extra={"stage": stage.value, "shop_domain": shop.shop_domain})

    @staticmethod
    def _failed(stage: ProbeStage, shop: ShopContext, exc: ThemeProbeError) -> ProbeResult:
        logger.warning(
            "theme_probe.failed",
            extra={"stage": stage.value, "shop_domain": shop.shop_domain, "error": str(exc)},
        )
        return ProbeResult(status=ProbeStatus.FAILED, error=exc)

    @staticmethod
    def _record(issues: list[ProbeIssue], stage: ProbeStage, key: str | None, exc: ThemeProbeError) -> None:
        issues.append(ProbeIssue(stage=stage, key=key, error=type(exc).__name__, message=str(exc)))
        logger.warning(
            "theme_probe.element_skipped",
            extra={"stage": stage.value, "key": key, "error_type": type(exc).__name__, "error": str(exc)},
        )

    def _collect(
        self,
        stage: ProbeStage,
        outcomes: Sequence[Outcome[Asset]],
        issues: list[ProbeIssue],
    ) -> list[Asset]:
        assets: list[Asset] = []
        for outcome in outcomes:
            if outcome.error is not None:
                self._record(issues, stage, outcome.key, outcome.error)
            elif outcome.value is not None:
                assets.append(outcome.value)
        return assets


async def probe_shop(
    shop: ShopContext,
    *,
    targets: Sequence[str] = (),
    client: ShopifyApiClient | None = None,
) -> ProbeResult:
    orchestrator = ProbeOrchestrator.from_settings(ShopifyThemeSource(shop=shop, client=client))
    return await orchestrator.probe(shop, targets=[*settings.target_blocks, *targets])
