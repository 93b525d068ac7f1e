"""In-memory TTL cache for aggregated resolution results.

Keys are the target URL exactly as the caller supplied it. Values are
replaced wholesale on every store; nothing is updated in place.

The map is split into shards, each guarded by its own lock. Lookups and
stores touch one shard, and the periodic sweep visits shards one at a time,
so a sweep never blocks operations on other shards. Locks are only held for
dictionary operations, never across network I/O.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import structlog

from sitemapscan.models.cache import CacheRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from sitemapscan.models.sitemap import ResolutionResult

log = structlog.get_logger()

DEFAULT_SHARD_COUNT = 16


class _Shard:
    __slots__ = ("lock", "records")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.records: dict[str, CacheRecord] = {}


class ResultCache:
    """Sharded in-memory cache implementing CacheProtocol."""

    def __init__(
        self,
        default_ttl_seconds: float,
        *,
        shards: int = DEFAULT_SHARD_COUNT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._shards = [_Shard() for _ in range(max(1, shards))]

    def _shard_for(self, key: str) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def lookup(self, key: str) -> ResolutionResult | None:
        """Return the cached result, or ``None`` if absent or expired."""
        record = self.get_record(key)
        return record.result if record is not None else None

    def get_record(self, key: str) -> CacheRecord | None:
        """Return the full record, or ``None`` if absent or expired. No side effects."""
        shard = self._shard_for(key)
        with shard.lock:
            record = shard.records.get(key)
        if record is None or record.is_expired(self._clock()):
            return None
        return record

    def store(self, key: str, value: ResolutionResult, ttl_seconds: float | None = None) -> None:
        """Overwrite ``key`` and restart its TTL. A TTL of zero or less stores nothing."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        now = self._clock()
        record = CacheRecord(key=key, result=value, stored_at=now, expires_at=now + ttl)
        shard = self._shard_for(key)
        with shard.lock:
            shard.records[key] = record

    def invalidate(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is a no-op."""
        shard = self._shard_for(key)
        with shard.lock:
            shard.records.pop(key, None)

    def cleanup_expired(self) -> int:
        """Remove every expired record and return how many were removed."""
        removed = 0
        for shard in self._shards:
            now = self._clock()
            with shard.lock:
                expired = [key for key, record in shard.records.items() if record.is_expired(now)]
                for key in expired:
                    del shard.records[key]
            removed += len(expired)

        log.info("cache_cleanup_complete", removed=removed, remaining=len(self))
        return removed

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total
