"""Target URL normalisation.

Turns whatever the caller typed into an authority (``scheme://host[:port]``)
from which robots.txt and fallback sitemap locations are derived.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from sitemapscan.errors import ErrorCode, SitemapScanError

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_LABEL_RE = re.compile(r"^[a-z0-9_]([a-z0-9_-]{0,61}[a-z0-9_])?$")
_ALLOWED_SCHEMES = frozenset({"http", "https"})


@dataclass(frozen=True)
class Target:
    """A normalised target: the original input plus its derived authority."""

    raw: str
    url: str
    authority: str


def _invalid(raw: str, reason: str) -> SitemapScanError:
    return SitemapScanError(
        code=ErrorCode.INVALID_INPUT,
        message=f"Invalid target URL {raw!r}: {reason}",
        recoverable=False,
    )


def is_valid_hostname(host: str) -> bool:
    """Return True for IP literals and syntactically valid DNS names."""
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass

    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return False

    ascii_host = ascii_host.rstrip(".")
    if not ascii_host or len(ascii_host) > 253:
        return False
    return all(_HOST_LABEL_RE.match(label) for label in ascii_host.split("."))


def normalise_target(raw: str) -> Target:
    """Normalise a caller-supplied URL, defaulting the scheme to https.

    Raises SitemapScanError(INVALID_INPUT) when no usable host can be parsed.
    """
    candidate = raw.strip()
    if not candidate:
        raise _invalid(raw, "empty")

    if candidate.startswith("//"):
        candidate = "https:" + candidate
    elif not _SCHEME_RE.match(candidate):
        candidate = "https://" + candidate

    parts = urlsplit(candidate)
    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise _invalid(raw, f"unsupported scheme {parts.scheme!r}")

    host = parts.hostname or ""
    if not host or not is_valid_hostname(host):
        raise _invalid(raw, "missing or malformed host")

    try:
        port = parts.port
    except ValueError as exc:
        raise _invalid(raw, "malformed port") from exc

    host_part = f"[{host}]" if ":" in host else host
    authority = f"{scheme}://{host_part}" if port is None else f"{scheme}://{host_part}:{port}"
    return Target(raw=raw, url=candidate, authority=authority)
