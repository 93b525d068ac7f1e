"""Request handler for get-sitemap.

Receives AppState, orchestrates cache invalidation / cache lookup / resolution,
and returns the wire dict. No Starlette imports; server.py handles the HTTP
wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from sitemapscan.aggregator import resolve_target
from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.models.api import SitemapRequest, SitemapResponse

if TYPE_CHECKING:
    from sitemapscan.state import AppState


async def handle(url: str, refresh_cache: bool, state: AppState) -> dict:
    """Handle a get-sitemap request."""
    log = structlog.get_logger().bind(handler="get_sitemap", url=url)

    # Validate input
    try:
        validated = SitemapRequest(url=url, refresh_cache=refresh_cache)
    except ValidationError as exc:
        raise SitemapScanError(
            code=ErrorCode.INVALID_INPUT,
            message=exc.errors()[0]["msg"].removeprefix("Value error, "),
            recoverable=False,
        ) from exc

    # Cache is keyed by the URL exactly as received
    key = validated.url

    if validated.refresh_cache:
        state.cache.invalidate(key)
        log.info("cache_refreshed")

    cached = state.cache.lookup(key)
    if cached is not None:
        log.info("cache_hit")
        return SitemapResponse(sitemap=cached.to_wire()).model_dump()

    log.info("cache_miss_resolving")
    result = await resolve_target(key, state.fetcher, state.settings)

    cache_settings = state.settings.cache
    ttl_seconds = (
        cache_settings.ttl_seconds if result.urls else cache_settings.empty_result_ttl_seconds
    )
    state.cache.store(key, result, ttl_seconds)

    return SitemapResponse(sitemap=result.to_wire()).model_dump()
