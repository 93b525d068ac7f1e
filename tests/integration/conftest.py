"""Integration test fixtures.

Provides a fully wired AppState: an in-memory ResultCache and a real Fetcher
over an httpx client. Outbound HTTP is intercepted with respx per test.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from sitemapscan.cache import ResultCache
from sitemapscan.config import Settings
from sitemapscan.fetcher import Fetcher
from sitemapscan.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator



@pytest.fixture()
def integration_settings() -> Settings:
    return Settings()


@pytest.fixture()
async def app_state(integration_settings: Settings) -> AsyncGenerator[AppState, None]:
    """Full AppState wired the way the server lifespan builds it."""
    async with httpx.AsyncClient() as client:
        yield AppState(
            settings=integration_settings,
            cache=ResultCache(integration_settings.cache.ttl_seconds),
            fetcher=Fetcher(client, integration_settings.fetcher),
            http_client=client,
        )
