"""robots.txt sitemap discovery with static fallbacks.

Only ``Sitemap:`` directives are read; allow/disallow and crawl-delay are
not enforced.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from sitemapscan.errors import SitemapScanError

if TYPE_CHECKING:
    from sitemapscan.protocols import FetcherProtocol

log = structlog.get_logger()

_SITEMAP_RE = re.compile(r"sitemap:\s*(.+)", re.IGNORECASE)

FALLBACK_SITEMAP_PATHS: tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemaps.xml",
)


def parse_robots_sitemaps(text: str) -> list[str]:
    """Extract sitemap URLs from robots.txt content.

    Matches ``sitemap:`` anywhere in a line, case-insensitively. File order
    and duplicates are preserved.
    """
    sitemaps: list[str] = []
    for line in text.splitlines():
        match = _SITEMAP_RE.search(line)
        if not match:
            continue
        value = match.group(1).strip()
        if value:
            sitemaps.append(value)
    return sitemaps


def fallback_sitemaps(authority: str) -> list[str]:
    """Conventional sitemap locations tried when robots.txt declares none."""
    return [authority + path for path in FALLBACK_SITEMAP_PATHS]


async def fetch_robots_sitemaps(
    fetcher: FetcherProtocol,
    authority: str,
    *,
    timeout: float,
) -> list[str]:
    """Fetch ``{authority}/robots.txt`` and return its declared sitemaps.

    Non-fatal: any fetch failure is logged and yields an empty list.
    """
    robots_url = f"{authority}/robots.txt"
    try:
        body = await fetcher.fetch(robots_url, timeout=timeout)
    except SitemapScanError as exc:
        log.info("robots_fetch_failed", url=robots_url, code=exc.code, reason=exc.message)
        return []

    sitemaps = parse_robots_sitemaps(body.decode("utf-8", errors="replace"))
    log.info("robots_parsed", url=robots_url, sitemap_count=len(sitemaps))
    return sitemaps


async def discover_candidates(
    fetcher: FetcherProtocol,
    authority: str,
    *,
    timeout: float,
) -> list[str]:
    """Return robots.txt sitemaps, or the fallback set when there are none."""
    candidates = await fetch_robots_sitemaps(fetcher, authority, timeout=timeout)
    if candidates:
        return candidates

    log.info("robots_fallback_used", authority=authority)
    return fallback_sitemaps(authority)
