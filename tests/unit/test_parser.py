"""Unit tests for sitemapscan.parser."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.models.sitemap import SitemapEntry, SitemapIndexEntry
from sitemapscan.parser import classify, parse_sitemap_index, parse_urlset

LEAF = "https://a.example/sitemap.xml"

FULL_URLSET = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url>
    <loc>
      https://a.example/page
    </loc>
    <lastmod>2024-05-01T10:00:00+00:00</lastmod>
    <changefreq>weekly</changefreq>
    <priority>0.8</priority>
  </url>
  <url>
    <loc>https://a.example/bare</loc>
  </url>
</urlset>
"""


class TestParseUrlset:
    def test_all_fields_read_and_trimmed(self) -> None:
        entries = parse_urlset(FULL_URLSET, LEAF)
        assert entries[0] == SitemapEntry(
            sitemap=LEAF,
            loc="https://a.example/page",
            lastmod="2024-05-01T10:00:00+00:00",
            changefreq="weekly",
            priority="0.8",
        )

    def test_optional_fields_absent(self) -> None:
        entry = parse_urlset(FULL_URLSET, LEAF)[1]
        assert entry.lastmod is None
        assert entry.changefreq is None
        assert entry.priority is None

    def test_every_entry_tagged_with_sitemap_url(self) -> None:
        assert {e.sitemap for e in parse_urlset(FULL_URLSET, LEAF)} == {LEAF}

    def test_document_order_and_duplicates_kept(self, urlset_xml: Callable[..., str]) -> None:
        body = urlset_xml("https://a.example/2", "https://a.example/1", "https://a.example/2")
        locs = [e.loc for e in parse_urlset(body.encode(), LEAF)]
        assert locs == ["https://a.example/2", "https://a.example/1", "https://a.example/2"]

    def test_without_namespace(self, urlset_xml: Callable[..., str]) -> None:
        body = urlset_xml("https://a.example/1", sitemap_ns=None)
        assert [e.loc for e in parse_urlset(body.encode(), LEAF)] == ["https://a.example/1"]

    def test_foreign_namespace_extensions_ignored(self) -> None:
        body = b"""<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"
                   xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">
          <url><loc>https://a.example/p</loc>
            <image:image><image:loc>https://a.example/i.png</image:loc></image:image>
          </url>
        </urlset>"""
        entries = parse_urlset(body, LEAF)
        assert [e.loc for e in entries] == ["https://a.example/p"]

    def test_entry_without_loc_skipped(self) -> None:
        body = b"<urlset><url><lastmod>2024-01-01</lastmod></url><url><loc> </loc></url></urlset>"
        assert parse_urlset(body, LEAF) == []

    def test_empty_urlset(self) -> None:
        assert parse_urlset(b"<urlset/>", LEAF) == []

    def test_wrong_root_raises(self) -> None:
        with pytest.raises(SitemapScanError) as exc_info:
            parse_urlset(b"<html><body/></html>", LEAF)
        assert exc_info.value.code == ErrorCode.PARSE_FAILED

    def test_malformed_xml_raises(self) -> None:
        with pytest.raises(SitemapScanError) as exc_info:
            parse_urlset(b"<urlset><url><loc>x</loc>", LEAF)
        assert exc_info.value.code == ErrorCode.PARSE_FAILED

    def test_entity_expansion_rejected(self) -> None:
        body = b"""<?xml version="1.0"?>
        <!DOCTYPE lolz [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;&lol;">]>
        <urlset><url><loc>&lol2;</loc></url></urlset>"""
        with pytest.raises(SitemapScanError) as exc_info:
            parse_urlset(body, LEAF)
        assert exc_info.value.code == ErrorCode.PARSE_FAILED


class TestParseSitemapIndex:
    def test_children_in_order(self, index_xml: Callable[..., str]) -> None:
        body = index_xml("https://a.example/s1.xml", "https://a.example/s2.xml")
        assert parse_sitemap_index(body.encode()) == [
            SitemapIndexEntry(loc="https://a.example/s1.xml"),
            SitemapIndexEntry(loc="https://a.example/s2.xml"),
        ]

    def test_lastmod_read(self) -> None:
        body = (
            b"<sitemapindex><sitemap><loc>https://a.example/s.xml</loc>"
            b"<lastmod>2024-01-01</lastmod></sitemap></sitemapindex>"
        )
        assert parse_sitemap_index(body)[0].lastmod == "2024-01-01"

    def test_urlset_is_not_an_index(self, urlset_xml: Callable[..., str]) -> None:
        with pytest.raises(SitemapScanError):
            parse_sitemap_index(urlset_xml("https://a.example/1").encode())


class TestClassify:
    def test_index_with_children(self, index_xml: Callable[..., str]) -> None:
        result = classify(index_xml("https://a.example/s1.xml").encode(), LEAF)
        assert result == [SitemapIndexEntry(loc="https://a.example/s1.xml")]

    def test_urlset(self, urlset_xml: Callable[..., str]) -> None:
        result = classify(urlset_xml("https://a.example/1").encode(), LEAF)
        assert result == [SitemapEntry(sitemap=LEAF, loc="https://a.example/1")]

    def test_empty_urlset_is_empty_leaf(self) -> None:
        assert classify(b"<urlset/>", LEAF) == []

    def test_empty_index_is_parse_failure(self) -> None:
        with pytest.raises(SitemapScanError) as exc_info:
            classify(b"<sitemapindex></sitemapindex>", LEAF)
        assert exc_info.value.code == ErrorCode.PARSE_FAILED

    def test_html_page_is_parse_failure(self) -> None:
        with pytest.raises(SitemapScanError) as exc_info:
            classify(b"<!DOCTYPE html><html><head></head></html>", LEAF)
        assert exc_info.value.code == ErrorCode.PARSE_FAILED

    def test_not_xml_is_parse_failure(self) -> None:
        with pytest.raises(SitemapScanError) as exc_info:
            classify(b"Not Found", LEAF)
        assert exc_info.value.code == ErrorCode.PARSE_FAILED
