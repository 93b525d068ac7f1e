from __future__ import annotations

from sitemapscan.models.api import SitemapRequest, SitemapResponse
from sitemapscan.models.cache import CacheRecord
from sitemapscan.models.sitemap import ResolutionResult, SitemapEntry, SitemapIndexEntry

__all__ = [
    # sitemap
    "SitemapEntry",
    "SitemapIndexEntry",
    "ResolutionResult",
    # cache
    "CacheRecord",
    # api
    "SitemapRequest",
    "SitemapResponse",
]
