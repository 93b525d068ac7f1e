"""Recursive sitemap resolution.

Expands sitemap-index documents into the leaf entries they reference. Pure
business logic over a FetcherProtocol, with no knowledge of AppState, caching
or HTTP serving.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.models.sitemap import SitemapIndexEntry
from sitemapscan.parser import classify

if TYPE_CHECKING:
    from sitemapscan.models.sitemap import SitemapEntry
    from sitemapscan.protocols import FetcherProtocol

log = structlog.get_logger()


class SitemapResolver:
    """Resolve sitemap URLs into leaf entries, recursing through indexes.

    One instance serves one top-level resolution. Its semaphore bounds the
    number of concurrent fetches across every branch; a permit is held only
    while fetching, never across recursion, so nested levels cannot starve
    each other.

    Child order is preserved: ``asyncio.gather`` returns results in argument
    order, so the concatenated entries match sequential discovery order.
    """

    def __init__(
        self,
        fetcher: FetcherProtocol,
        *,
        timeout: float,
        max_depth: int = 10,
        max_concurrency: int = 8,
    ) -> None:
        self._fetcher = fetcher
        self._timeout = timeout
        self._max_depth = max_depth
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def resolve(self, sitemap_url: str) -> list[SitemapEntry]:
        """Resolve one sitemap URL.

        Failures of the URL itself propagate as SitemapScanError. Failures of
        children inside an index are logged and contribute nothing.
        """
        return await self._resolve(sitemap_url, depth=0, ancestors=frozenset())

    async def _resolve(
        self,
        sitemap_url: str,
        *,
        depth: int,
        ancestors: frozenset[str],
    ) -> list[SitemapEntry]:
        if sitemap_url in ancestors:
            raise SitemapScanError(
                code=ErrorCode.CYCLE_DETECTED,
                message=f"Sitemap {sitemap_url} references itself through its ancestors",
            )
        if depth > self._max_depth:
            raise SitemapScanError(
                code=ErrorCode.DEPTH_EXCEEDED,
                message=f"Sitemap {sitemap_url} is nested deeper than {self._max_depth} levels",
            )

        async with self._semaphore:
            body = await self._fetcher.fetch(sitemap_url, timeout=self._timeout)

        # Large documents take a while to parse; keep the event loop free.
        parsed = await asyncio.to_thread(classify, body, sitemap_url)

        if not parsed or not isinstance(parsed[0], SitemapIndexEntry):
            log.debug("sitemap_parsed", url=sitemap_url, url_count=len(parsed))
            return parsed  # type: ignore[return-value]

        log.info("sitemap_index_detected", url=sitemap_url, child_count=len(parsed), depth=depth)
        lineage = ancestors | {sitemap_url}
        children = await asyncio.gather(
            *(
                self._resolve_child(
                    entry.loc, parent=sitemap_url, depth=depth + 1, ancestors=lineage
                )
                for entry in parsed
            )
        )
        return [entry for child_entries in children for entry in child_entries]

    async def _resolve_child(
        self,
        sitemap_url: str,
        *,
        parent: str,
        depth: int,
        ancestors: frozenset[str],
    ) -> list[SitemapEntry]:
        try:
            return await self._resolve(sitemap_url, depth=depth, ancestors=ancestors)
        except SitemapScanError as exc:
            log.info(
                "sitemap_child_failed",
                url=sitemap_url,
                parent=parent,
                code=exc.code,
                reason=exc.message,
            )
            return []
