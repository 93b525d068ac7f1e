"""Unit tests for the cache cleanup scheduler in schedulers.py.

Tests the sweep loop by mocking asyncio.sleep. Each test controls how many
iterations run before cancellation and checks the resulting calls.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from sitemapscan.config import Settings
from sitemapscan.schedulers import run_cache_cleanup_scheduler
from sitemapscan.state import AppState


def _make_state(cleanup_interval_minutes: float = 30) -> AppState:
    settings = Settings(cache={"cleanup_interval_minutes": cleanup_interval_minutes})
    return AppState(settings=settings, cache=MagicMock(), fetcher=MagicMock())


class TestCacheCleanupScheduler:
    async def test_sleeps_configured_interval_before_sweeping(self) -> None:
        state = _make_state(cleanup_interval_minutes=30)
        sleep_durations: list[float] = []

        async def fake_sleep(duration: float) -> None:
            sleep_durations.append(duration)
            if len(sleep_durations) >= 3:
                raise asyncio.CancelledError

        with (
            patch("asyncio.sleep", side_effect=fake_sleep),
            pytest.raises(asyncio.CancelledError),
        ):
            await run_cache_cleanup_scheduler(state)

        assert sleep_durations == [1800, 1800, 1800]
        assert state.cache.cleanup_expired.call_count == 2

    async def test_sweep_error_does_not_stop_loop(self) -> None:
        state = _make_state()
        state.cache.cleanup_expired.side_effect = [RuntimeError("boom"), 3]
        sleeps = 0

        async def fake_sleep(duration: float) -> None:
            nonlocal sleeps
            sleeps += 1
            if sleeps >= 3:
                raise asyncio.CancelledError

        with (
            patch("asyncio.sleep", side_effect=fake_sleep),
            pytest.raises(asyncio.CancelledError),
        ):
            await run_cache_cleanup_scheduler(state)

        assert state.cache.cleanup_expired.call_count == 2

    async def test_cancellation_stops_task(self) -> None:
        state = _make_state(cleanup_interval_minutes=0.0001)
        task = asyncio.create_task(run_cache_cleanup_scheduler(state))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert state.cache.cleanup_expired.called
