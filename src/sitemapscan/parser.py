"""Sitemap XML parsing and classification.

Untrusted XML is parsed with defusedxml so entity-expansion and external
entity payloads are rejected. Elements are matched by local name, so both
namespaced (``http://www.sitemaps.org/schemas/sitemap/0.9``) and bare
documents are accepted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException
from defusedxml import ElementTree

from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.models.sitemap import SitemapEntry, SitemapIndexEntry

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element


def _local_name(tag: str) -> str:
    """``'{http://www.sitemaps.org/schemas/sitemap/0.9}loc'`` → ``'loc'``."""
    return tag.rsplit("}", 1)[-1]


def _parse_root(body: bytes, sitemap_url: str) -> Element:
    try:
        return ElementTree.fromstring(body)
    except (ElementTree.ParseError, DefusedXmlException) as exc:
        raise SitemapScanError(
            code=ErrorCode.PARSE_FAILED,
            message=f"Failed to parse sitemap XML from {sitemap_url}: {exc}",
        ) from exc


def _expect_root(root: Element, expected: str, sitemap_url: str) -> None:
    if _local_name(root.tag) != expected:
        raise SitemapScanError(
            code=ErrorCode.PARSE_FAILED,
            message=(
                f"Expected <{expected}> root in {sitemap_url}, "
                f"found <{_local_name(root.tag)}>"
            ),
        )


def _child_texts(element: Element) -> dict[str, str]:
    """Map child local names to their trimmed text, keeping the first occurrence."""
    fields: dict[str, str] = {}
    for child in element:
        name = _local_name(child.tag)
        if name not in fields:
            fields[name] = (child.text or "").strip()
    return fields


def _index_entries(root: Element) -> list[SitemapIndexEntry]:
    entries: list[SitemapIndexEntry] = []
    for element in root:
        if _local_name(element.tag) != "sitemap":
            continue
        fields = _child_texts(element)
        loc = fields.get("loc", "")
        if loc:
            entries.append(SitemapIndexEntry(loc=loc, lastmod=fields.get("lastmod") or None))
    return entries


def _url_entries(root: Element, sitemap_url: str) -> list[SitemapEntry]:
    entries: list[SitemapEntry] = []
    for element in root:
        if _local_name(element.tag) != "url":
            continue
        fields = _child_texts(element)
        loc = fields.get("loc", "")
        if not loc:
            continue
        entries.append(
            SitemapEntry(
                sitemap=sitemap_url,
                loc=loc,
                lastmod=fields.get("lastmod") or None,
                changefreq=fields.get("changefreq") or None,
                priority=fields.get("priority") or None,
            )
        )
    return entries


def parse_sitemap_index(body: bytes, sitemap_url: str = "") -> list[SitemapIndexEntry]:
    """Parse a ``<sitemapindex>`` document into its child references."""
    root = _parse_root(body, sitemap_url)
    _expect_root(root, "sitemapindex", sitemap_url)
    return _index_entries(root)


def parse_urlset(body: bytes, sitemap_url: str) -> list[SitemapEntry]:
    """Parse a ``<urlset>`` document, tagging each entry with ``sitemap_url``."""
    root = _parse_root(body, sitemap_url)
    _expect_root(root, "urlset", sitemap_url)
    return _url_entries(root, sitemap_url)


def classify(body: bytes, sitemap_url: str) -> list[SitemapIndexEntry] | list[SitemapEntry]:
    """Classify a sitemap document as an index or a leaf URL set.

    An index that parses with at least one child wins. Anything else must
    parse as a ``<urlset>``; failure there raises PARSE_FAILED.
    """
    root = _parse_root(body, sitemap_url)

    if _local_name(root.tag) == "sitemapindex":
        index_entries = _index_entries(root)
        if index_entries:
            return index_entries

    _expect_root(root, "urlset", sitemap_url)
    return _url_entries(root, sitemap_url)
