"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SITEMAPSCAN__SERVER__PORT=8080)
  2. sitemapscan.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# The sitemap protocol caps an uncompressed sitemap at 50 MiB.
MAX_SITEMAP_BYTES = 50 * 1024 * 1024


def _find_config_file() -> str | None:
    """Return the path of the first sitemapscan.yaml found, or None."""
    candidates = [
        Path("sitemapscan.yaml"),
        Path(platformdirs.user_config_dir("sitemapscan")) / "sitemapscan.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=4000, ge=0, le=65535)
    # Basic auth is enabled only when both are set.
    username: str = ""
    password: str = ""

    @property
    def auth_enabled(self) -> bool:
        return bool(self.username and self.password)


class FetcherSettings(BaseModel):
    robots_timeout_seconds: float = Field(default=10.0, gt=0)
    sitemap_timeout_seconds: float = Field(default=30.0, gt=0)
    max_redirects: int = Field(default=5, ge=0)
    max_response_bytes: int = Field(default=MAX_SITEMAP_BYTES, gt=0)
    user_agent: str = "sitemapscan/1.0"
    max_connections: int = Field(default=20, gt=0)
    block_private_networks: bool = True


class ResolverSettings(BaseModel):
    max_depth: int = Field(default=10, ge=0)
    max_concurrency: int = Field(default=8, gt=0)
    deadline_seconds: float = Field(default=0, ge=0)  # 0 disables the deadline


class CacheSettings(BaseModel):
    ttl_hours: float = Field(default=24, gt=0)
    cleanup_interval_minutes: float = Field(default=30, gt=0)
    # None: empty results live as long as successes. 0: never cache them.
    empty_result_ttl_minutes: float | None = Field(default=None, ge=0)

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_hours * 3600

    @property
    def empty_result_ttl_seconds(self) -> float:
        if self.empty_result_ttl_minutes is None:
            return self.ttl_seconds
        return self.empty_result_ttl_minutes * 60


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SITEMAPSCAN__CACHE__TTL_HOURS=1
        env_prefix="SITEMAPSCAN__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    fetcher: FetcherSettings = FetcherSettings()
    resolver: ResolverSettings = ResolverSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
