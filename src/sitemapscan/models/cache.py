from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from sitemapscan.models.sitemap import ResolutionResult


class CacheRecord(BaseModel):
    """Cached resolution for one target URL, replaced wholesale on store."""

    model_config = ConfigDict(frozen=True)

    key: str  # Target URL exactly as the caller supplied it
    result: ResolutionResult
    stored_at: float  # Cache clock readings (monotonic seconds by default)
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
