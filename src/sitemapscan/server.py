"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan context manager
- Route requests to handlers and map SitemapScanError to JSON responses
- Parse CLI overrides and start uvicorn
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route

import sitemapscan.handlers.get_sitemap as h_get_sitemap
from sitemapscan import __version__
from sitemapscan.cache import ResultCache
from sitemapscan.config import Settings
from sitemapscan.errors import ErrorCode, SitemapScanError
from sitemapscan.fetcher import Fetcher, build_http_client
from sitemapscan.schedulers import run_cache_cleanup_scheduler
from sitemapscan.state import AppState
from sitemapscan.transport import BasicAuthMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_state(settings: Settings) -> AppState:
    """Wire the shared client, fetcher and cache for one server lifetime."""
    http_client = build_http_client(settings.fetcher)
    return AppState(
        settings=settings,
        cache=ResultCache(settings.cache.ttl_seconds),
        fetcher=Fetcher(http_client, settings.fetcher),
        http_client=http_client,
    )


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings: Settings = app.state.settings
    state = build_state(settings)
    app.state.sitemapscan = state

    cache_cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

    log.info(
        "server_started",
        version=__version__,
        auth_enabled=settings.server.auth_enabled,
        cache_ttl_hours=settings.cache.ttl_hours,
    )

    try:
        yield
    finally:
        cache_cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cache_cleanup_task
        if state.http_client is not None:
            await state.http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 400,
}


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def get_sitemap(request: Request) -> JSONResponse:
    """``POST /get-sitemap`` with body ``{"url": str, "refresh_cache": bool}``."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error("Invalid JSON", 400)

    if not isinstance(payload, dict):
        return _error("Invalid JSON", 400)

    url = payload.get("url")
    refresh_cache = payload.get("refresh_cache", False)
    if url is not None and not isinstance(url, str):
        return _error("Invalid JSON", 400)
    if not isinstance(refresh_cache, bool):
        return _error("Invalid JSON", 400)
    if not url:
        return _error("URL is required", 400)

    state: AppState = request.app.state.sitemapscan
    try:
        body = await h_get_sitemap.handle(url, refresh_cache, state)
    except SitemapScanError as exc:
        log.warning(
            "request_error",
            handler="get_sitemap",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return JSONResponse(exc.to_dict(), status_code=_STATUS_BY_CODE.get(exc.code, 500))
    except Exception:
        log.error("request_unexpected_error", handler="get_sitemap", exc_info=True)
        raise

    return JSONResponse(body)


async def healthz(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": __version__})


async def _http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse({"error": message}, status_code=exc.status_code, headers=exc.headers)


def create_app(settings: Settings | None = None) -> Starlette:
    """Build the ASGI application. Basic auth is added when credentials are configured."""
    settings = settings or Settings()

    middleware: list[Middleware] = []
    if settings.server.auth_enabled:
        middleware.append(
            Middleware(
                BasicAuthMiddleware,
                username=settings.server.username,
                password=settings.server.password,
            )
        )

    app = Starlette(
        routes=[
            Route("/get-sitemap", get_sitemap, methods=["POST"]),
            Route("/healthz", healthz, methods=["GET"]),
        ],
        middleware=middleware,
        exception_handlers={HTTPException: _http_exception},
        lifespan=lifespan,
    )
    app.state.settings = settings
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sitemapscan",
        description="Serve aggregated website sitemaps over a cached HTTP API.",
    )
    parser.add_argument("--host", help="interface to bind")
    parser.add_argument("--port", type=int, help="API server port")
    parser.add_argument("--username", help="username for basic authentication")
    parser.add_argument("--password", help="password for basic authentication")
    return parser.parse_args(argv)


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with any CLI flags layered over the loaded configuration."""
    overrides = {
        name: value
        for name in ("host", "port", "username", "password")
        if (value := getattr(args, name)) is not None
    }
    if not overrides:
        return settings
    server = settings.server.model_copy(update=overrides)
    return settings.model_copy(update={"server": server})


def main(argv: Sequence[str] | None = None) -> None:
    settings = apply_cli_overrides(Settings(), _parse_args(argv))
    _setup_logging(settings)

    if not settings.server.auth_enabled:
        log.warning("http_auth_disabled")

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
        timeout_graceful_shutdown=30,
    )


if __name__ == "__main__":
    main()
