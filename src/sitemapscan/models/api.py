from __future__ import annotations

from pydantic import BaseModel, field_validator


class SitemapRequest(BaseModel):
    """Body of ``POST /get-sitemap``."""

    url: str
    refresh_cache: bool = False

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("URL is required")
        if len(v) > 2048:
            raise ValueError("URL must be 2048 characters or fewer")
        return v


class SitemapResponse(BaseModel):
    """Body of a successful ``POST /get-sitemap`` response."""

    sitemap: dict  # ResolutionResult wire form
