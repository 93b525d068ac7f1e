"""Background scheduler coroutine for cache cleanup."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from sitemapscan.state import AppState

log = structlog.get_logger()


async def run_cache_cleanup_scheduler(state: AppState) -> None:
    """Sweep expired cache records every ``cleanup_interval_minutes`` until cancelled."""
    interval_seconds = state.settings.cache.cleanup_interval_minutes * 60

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            state.cache.cleanup_expired()
        except Exception:
            log.warning("cache_cleanup_scheduler_error", exc_info=True)
