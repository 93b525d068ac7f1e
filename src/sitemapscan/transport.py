"""HTTP basic-auth middleware for the sitemap API."""

from __future__ import annotations

import base64
import binascii
import secrets
from typing import TYPE_CHECKING

from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": 'Basic realm="Restricted"'}


def parse_basic_auth(header: str) -> tuple[str, str] | None:
    """Decode an ``Authorization: Basic ...`` header into (username, password)."""
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware:
    """Pure ASGI middleware enforcing HTTP basic authentication.

    Credentials are compared in constant time. Non-HTTP scopes (lifespan)
    pass straight through.
    """

    def __init__(self, app: ASGIApp, *, username: str, password: str) -> None:
        self.app = app
        self.username = username
        self.password = password

    def _authorised(self, headers: Headers) -> bool:
        credentials = parse_basic_auth(headers.get("authorization", ""))
        if credentials is None:
            return False
        username, password = credentials
        # Evaluate both comparisons so timing does not reveal which one failed
        username_ok = secrets.compare_digest(username.encode(), self.username.encode())
        password_ok = secrets.compare_digest(password.encode(), self.password.encode())
        return username_ok and password_ok

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and not self._authorised(Headers(scope=scope)):
            response = PlainTextResponse(
                "Unauthorized", status_code=401, headers=_UNAUTHORIZED_HEADERS
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
