"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan
context manager) and handed to every request handler through
``request.app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from sitemapscan.config import Settings
    from sitemapscan.protocols import CacheProtocol, FetcherProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every request handler."""

    settings: Settings
    cache: CacheProtocol
    fetcher: FetcherProtocol
    http_client: httpx.AsyncClient | None = None
