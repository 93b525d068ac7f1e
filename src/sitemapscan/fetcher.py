"""Bounded HTTP fetcher for robots.txt and sitemap documents.

All network I/O goes through a single Fetcher instance shared across
requests. The Fetcher receives an httpx.AsyncClient via constructor
injection; the server lifespan owns the client lifecycle.
"""

from __future__ import annotations

import asyncio
import ipaddress
import zlib
from urllib.parse import urljoin, urlparse

import httpx
import structlog

from sitemapscan.config import FetcherSettings
from sitemapscan.errors import ErrorCode, SitemapScanError

log = structlog.get_logger()

PRIVATE_NETWORKS: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("::/128"),
]

_GZIP_MAGIC = b"\x1f\x8b"


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.sitemap_timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=max(1, settings.max_connections // 2),
        ),
    )


def is_url_allowed(url: str, *, block_private_networks: bool = True) -> bool:
    """Check whether a URL may be fetched.

    Only http(s) URLs with a host are fetchable. Literal IPs in private,
    loopback and link-local ranges are refused when ``block_private_networks``
    is set. Hostnames are not resolved here.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    hostname = parsed.hostname or ""
    if not hostname:
        return False

    if not block_private_networks:
        return True

    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        return True  # hostname is a domain name, not an IP

    # ::ffff:a.b.c.d reaches the embedded IPv4 host
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped

    if addr.is_private or addr.is_loopback or addr.is_link_local:
        return False
    if addr.is_reserved or addr.is_unspecified or addr.is_multicast:
        return False
    return not any(addr in net for net in PRIVATE_NETWORKS)


def _decompress_gzip(body: bytes, url: str, limit: int) -> bytes:
    """Inflate a gzipped sitemap (``sitemap.xml.gz``) without exceeding ``limit``."""
    decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
    try:
        data = decompressor.decompress(body, limit + 1)
    except zlib.error as exc:
        raise SitemapScanError(
            code=ErrorCode.PARSE_FAILED,
            message=f"Corrupt gzip body from {url}: {exc}",
        ) from exc
    if len(data) > limit or decompressor.unconsumed_tail:
        raise SitemapScanError(
            code=ErrorCode.FETCH_FAILED,
            message=f"Decompressed body from {url} exceeds {limit} bytes",
        )
    return data


class Fetcher:
    """Single-resource GET with an overall deadline, size cap and manual redirects."""

    def __init__(self, client: httpx.AsyncClient, settings: FetcherSettings | None = None) -> None:
        self._client = client
        self._settings = settings or FetcherSettings()

    async def fetch(self, url: str, *, timeout: float) -> bytes:
        """Fetch ``url`` and return the raw body bytes.

        ``timeout`` bounds the whole exchange, including a remote that stalls
        mid-body. Raises SitemapScanError on SSRF violations, network errors,
        timeouts, oversized bodies and any status other than 200.
        """
        try:
            async with asyncio.timeout(timeout):
                body = await self._fetch_following_redirects(url, timeout)
        except SitemapScanError:
            raise
        except TimeoutError as exc:
            raise SitemapScanError(
                code=ErrorCode.FETCH_FAILED,
                message=f"Timed out after {timeout}s fetching {url}",
                recoverable=True,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise SitemapScanError(
                code=ErrorCode.FETCH_FAILED,
                message=f"Network error fetching {url}: {exc}",
                recoverable=True,
            ) from exc

        if body[:2] == _GZIP_MAGIC:
            body = _decompress_gzip(body, url, self._settings.max_response_bytes)

        log.debug("fetch_complete", url=url, content_length=len(body))
        return body

    async def _fetch_following_redirects(self, url: str, timeout: float) -> bytes:
        max_redirects = self._settings.max_redirects
        current_url = url

        for hop in range(max_redirects + 1):
            if not is_url_allowed(
                current_url, block_private_networks=self._settings.block_private_networks
            ):
                log.warning("ssrf_blocked", url=current_url)
                raise SitemapScanError(
                    code=ErrorCode.URL_NOT_ALLOWED,
                    message=f"URL not allowed: {current_url}",
                )

            async with self._client.stream("GET", current_url, timeout=timeout) as response:
                if response.is_redirect and "location" in response.headers:
                    if hop == max_redirects:
                        raise SitemapScanError(
                            code=ErrorCode.FETCH_FAILED,
                            message=f"Too many redirects fetching {url}",
                        )
                    current_url = urljoin(current_url, response.headers["location"])
                    continue

                if response.status_code != 200:
                    if response.status_code == 404:
                        raise SitemapScanError(
                            code=ErrorCode.NOT_FOUND,
                            message=f"HTTP 404 fetching {url}",
                        )
                    raise SitemapScanError(
                        code=ErrorCode.FETCH_FAILED,
                        message=f"HTTP {response.status_code} fetching {url}",
                        recoverable=True,
                    )

                return await self._read_capped(response, url)

        # Unreachable but satisfies the type checker
        raise SitemapScanError(code=ErrorCode.FETCH_FAILED, message="Redirect loop")

    async def _read_capped(self, response: httpx.Response, url: str) -> bytes:
        limit = self._settings.max_response_bytes
        too_large = SitemapScanError(
            code=ErrorCode.FETCH_FAILED,
            message=f"Response from {url} exceeds {limit} bytes",
        )

        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > limit:
            raise too_large

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > limit:
                raise too_large
        return bytes(body)
