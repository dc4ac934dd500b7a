from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from theme_probe.errors import ThemeProbeError
from theme_probe.models import Asset, Outcome
from theme_probe.theme_source import ThemeSource

T = TypeVar("T")


async def gather_outcomes(
    keys: Sequence[str],
    worker: Callable[[str], Awaitable[T]],
) -> tuple[Outcome[T], ...]:
    """Run ``worker`` for every key concurrently and pair each key with its result.

    A ``ThemeProbeError`` raised by one unit is captured in that unit's
    outcome and never cancels its siblings. Any other exception propagates.
    Outcomes are returned in key order.
    """

    async def _run(key: str) -> Outcome[T]:
        try:
            value = await worker(key)
        except ThemeProbeError as exc:
            return Outcome(key=key, error=exc)
        return Outcome(key=key, value=value)

    return tuple(await asyncio.gather(*(_run(key) for key in keys)))


class AssetFetcher:
    def __init__(self, source: ThemeSource, *, max_concurrency: int = 4) -> None:
        self._source = source
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def fetch_asset(self, theme_id: str, key: str) -> Asset:
        async with self._semaphore:
            content = await self._source.get_asset_content(theme_id, key)
        return Asset(key=key, content=content)

    async def fetch_many(self, theme_id: str, keys: Sequence[str]) -> tuple[Outcome[Asset], ...]:
        return await gather_outcomes(keys, lambda key: self.fetch_asset(theme_id, key))
