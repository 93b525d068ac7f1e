"""Protocol interfaces for swappable components.

Handlers and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory fakes
- Future backends (e.g. Redis cache) to be swapped without changing handlers
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from sitemapscan.models.sitemap import ResolutionResult


class CacheProtocol(Protocol):
    """Interface for the resolution result cache."""

    def lookup(self, key: str) -> ResolutionResult | None: ...

    def invalidate(self, key: str) -> None: ...

    def store(
        self, key: str, value: ResolutionResult, ttl_seconds: float | None = None
    ) -> None: ...

    def cleanup_expired(self) -> int: ...


class FetcherProtocol(Protocol):
    """Interface for the bounded HTTP fetcher."""

    async def fetch(self, url: str, *, timeout: float) -> bytes: ...
