"""Error codes and the structured error payload carried by result envelopes."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    INVALID_URL = "INVALID_URL"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    INVALID_VIEWPORT = "INVALID_VIEWPORT"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    BROWSER_ERROR = "BROWSER_ERROR"
    BROWSER_UNAVAILABLE = "BROWSER_UNAVAILABLE"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    DECODE_FAILED = "DECODE_FAILED"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    CANCELLED = "CANCELLED"


# Input-shape errors are deterministic and never retried
VALIDATION_CODES = frozenset({
    ErrorCode.INVALID_URL,
    ErrorCode.INVALID_SELECTOR,
    ErrorCode.INVALID_VIEWPORT,
})


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class ErrorInfo(BaseModel):
    code: ErrorCode
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=now_iso)

    @property
    def retryable(self) -> bool:
        return self.code not in VALIDATION_CODES
