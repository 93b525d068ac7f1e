from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SitemapEntry(BaseModel):
    """Single page URL found in a leaf sitemap (``<urlset>``)."""

    model_config = ConfigDict(frozen=True)

    sitemap: str  # URL of the leaf sitemap this entry was read from
    loc: str
    lastmod: str | None = None
    changefreq: str | None = None
    priority: str | None = None

    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


class SitemapIndexEntry(BaseModel):
    """Reference to another sitemap document inside a ``<sitemapindex>``.

    Only lives for the duration of a resolution; never returned to callers.
    """

    model_config = ConfigDict(frozen=True)

    loc: str
    lastmod: str | None = None


class ResolutionResult(BaseModel):
    """Aggregated output of resolving one target URL."""

    model_config = ConfigDict(frozen=True)

    urls: list[SitemapEntry] = []
    sitemap_urls: list[str] = []
    error: str | None = None  # Set only when ``urls`` is empty

    def to_wire(self) -> dict:
        wire: dict = {
            "urls": [entry.to_wire() for entry in self.urls],
            "sitemap_urls": list(self.sitemap_urls),
        }
        if self.error:
            wire["error"] = self.error
        return wire
