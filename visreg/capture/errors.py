"""Capture failure classification."""

from __future__ import annotations

import asyncio

from visreg.models.errors import ErrorCode


class ElementNotFoundError(Exception):
    """The requested selector matched nothing on the page."""


_KEYWORDS: list[tuple[tuple[str, ...], ErrorCode]] = [
    (("timeout", "timed out"), ErrorCode.TIMEOUT),
    (("network", "net::", "connection refused", "connection reset", "dns"), ErrorCode.NETWORK_ERROR),
    (("not found", "no element", "did not match"), ErrorCode.ELEMENT_NOT_FOUND),
    (("crash", "browser", "target closed", "target page, context or browser has been closed"),
     ErrorCode.BROWSER_ERROR),
]


def classify_failure(error: BaseException) -> ErrorCode:
    """Map a runtime failure from the browser control to an error code."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorCode.TIMEOUT
    if isinstance(error, ElementNotFoundError):
        return ErrorCode.ELEMENT_NOT_FOUND
    if isinstance(error, ConnectionError):
        return ErrorCode.NETWORK_ERROR

    message = str(error).lower()
    for keywords, code in _KEYWORDS:
        if any(k in message for k in keywords):
            return code
    return ErrorCode.CAPTURE_FAILED
