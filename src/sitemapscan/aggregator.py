"""Top-level resolution of a target URL into its aggregated sitemap tree.

``resolve_target`` is the single entry point the HTTP layer calls. It raises
only for a malformed target (INVALID_INPUT). Every network and parse failure,
and any branch still running when the optional resolution budget runs out,
is absorbed into the returned ResolutionResult.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.models.sitemap import ResolutionResult
from sitemapscan.resolver import SitemapResolver
from sitemapscan.robots import discover_candidates
from sitemapscan.urls import normalise_target

if TYPE_CHECKING:
    from sitemapscan.config import Settings
    from sitemapscan.models.sitemap import SitemapEntry
    from sitemapscan.protocols import FetcherProtocol

NO_SITEMAP_DATA = "No sitemap data found"


async def resolve_target(
    target_url: str,
    fetcher: FetcherProtocol,
    settings: Settings,
) -> ResolutionResult:
    """Resolve every sitemap reachable from ``target_url``.

    With ``resolver.deadline_seconds`` set, candidates that have not finished
    by the deadline are dropped and the rest are still returned.
    """
    target = normalise_target(target_url)
    log = structlog.get_logger().bind(target=target_url, authority=target.authority)

    budget = settings.resolver.deadline_seconds
    deadline_at = asyncio.get_running_loop().time() + budget if budget else None
    result = await _aggregate(target.authority, fetcher, settings, deadline_at)

    log.info(
        "resolution_complete",
        url_count=len(result.urls),
        sitemap_count=len(result.sitemap_urls),
        error=result.error,
    )
    return result


async def _aggregate(
    authority: str,
    fetcher: FetcherProtocol,
    settings: Settings,
    deadline_at: float | None,
) -> ResolutionResult:
    try:
        async with asyncio.timeout_at(deadline_at):
            candidates = await discover_candidates(
                fetcher, authority, timeout=settings.fetcher.robots_timeout_seconds
            )
    except TimeoutError:
        structlog.get_logger().info(
            "candidate_discovery_dropped", authority=authority, code=ErrorCode.RESOLUTION_TIMEOUT
        )
        candidates = []

    resolver = SitemapResolver(
        fetcher,
        timeout=settings.fetcher.sitemap_timeout_seconds,
        max_depth=settings.resolver.max_depth,
        max_concurrency=settings.resolver.max_concurrency,
    )
    outcomes = await asyncio.gather(
        *(_resolve_candidate(resolver, candidate, deadline_at) for candidate in candidates)
    )

    urls: list[SitemapEntry] = []
    sitemap_urls: list[str] = []
    for candidate, entries in zip(candidates, outcomes, strict=True):
        if not entries:
            continue
        urls.extend(entries)
        sitemap_urls.append(candidate)

    return ResolutionResult(
        urls=urls,
        sitemap_urls=sitemap_urls,
        error=None if urls else NO_SITEMAP_DATA,
    )


async def _resolve_candidate(
    resolver: SitemapResolver,
    candidate: str,
    deadline_at: float | None,
) -> list[SitemapEntry]:
    """Resolve one candidate; a failing or late candidate contributes nothing."""
    try:
        async with asyncio.timeout_at(deadline_at):
            return await resolver.resolve(candidate)
    except SitemapScanError as exc:
        code, reason = exc.code, exc.message
    except TimeoutError:
        code, reason = ErrorCode.RESOLUTION_TIMEOUT, "resolution deadline reached"
    structlog.get_logger().info("candidate_dropped", url=candidate, code=code, reason=reason)
    return []
