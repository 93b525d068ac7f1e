"""Shared test fixtures for the sitemapscan test suite."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from sitemapscan.config import Settings
from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.fetcher import Fetcher

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def _urlset(*locs: str, sitemap_ns: str | None = SITEMAP_NS) -> str:
    xmlns = f' xmlns="{sitemap_ns}"' if sitemap_ns else ""
    body = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset{xmlns}>{body}</urlset>'


def _index(*locs: str, sitemap_ns: str | None = SITEMAP_NS) -> str:
    xmlns = f' xmlns="{sitemap_ns}"' if sitemap_ns else ""
    body = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex{xmlns}>{body}</sitemapindex>'


class FakeFetcher:
    """In-memory FetcherProtocol implementation.

    Maps URLs to bodies. Unknown URLs raise NOT_FOUND; SitemapScanError
    values are raised instead of returned. Every call is recorded.
    """

    def __init__(self, responses: dict[str, str | bytes | SitemapScanError] | None = None) -> None:
        self.responses: dict[str, str | bytes | SitemapScanError] = dict(responses or {})
        self.calls: list[tuple[str, float]] = []

    async def fetch(self, url: str, *, timeout: float) -> bytes:
        self.calls.append((url, timeout))
        response = self.responses.get(url)
        if response is None:
            raise SitemapScanError(code=ErrorCode.NOT_FOUND, message=f"HTTP 404 fetching {url}")
        if isinstance(response, SitemapScanError):
            raise response
        return response.encode("utf-8") if isinstance(response, str) else response

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


@pytest.fixture()
def urlset_xml() -> Callable[..., str]:
    """Builder for ``<urlset>`` documents: ``urlset_xml("https://a/1", ...)``."""
    return _urlset


@pytest.fixture()
def index_xml() -> Callable[..., str]:
    """Builder for ``<sitemapindex>`` documents: ``index_xml("https://a/s1.xml", ...)``."""
    return _index


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def fetcher(http_client: httpx.AsyncClient) -> Fetcher:
    return Fetcher(http_client)
