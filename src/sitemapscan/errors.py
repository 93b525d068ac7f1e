from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    FETCH_FAILED = "FETCH_FAILED"
    URL_NOT_ALLOWED = "URL_NOT_ALLOWED"
    PARSE_FAILED = "PARSE_FAILED"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"
    RESOLUTION_TIMEOUT = "RESOLUTION_TIMEOUT"


class SitemapScanError(Exception):
    """Raised for all expected failure conditions during resolution.

    Only ``INVALID_INPUT`` ever escapes ``resolve_target``. Every other code
    is caught at the branch that raised it and turns into an omission from
    the result. ``RESOLUTION_TIMEOUT`` tags branches dropped at the deadline.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {"error": self.message}
