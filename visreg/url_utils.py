"""Shared URL and selector utilities: validation and stable screenshot names."""

from __future__ import annotations

import re
import time
from urllib.parse import urlparse

ALLOWED_SCHEMES = frozenset({"http", "https", "file", "data", "about"})

# Markup or script-like tokens never appear in a legitimate CSS selector
_UNSAFE_SELECTOR = re.compile(
    r"<|javascript:|\bon\w+\s*=|[{};`]|expression\s*\(",
    re.IGNORECASE,
)


def is_valid_url(url: str) -> bool:
    """Check that a URL parses and has a usable scheme/location."""
    if not url or not url.strip() or any(c.isspace() for c in url.strip()):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ALLOWED_SCHEMES:
        return False
    if parsed.scheme in ("http", "https"):
        return bool(parsed.hostname)
    if parsed.scheme == "file":
        return bool(parsed.path)
    return True


def is_safe_selector(selector: str) -> bool:
    """Reject empty selectors and ones carrying markup/script tokens."""
    if not selector or not selector.strip():
        return False
    return _UNSAFE_SELECTOR.search(selector) is None


def screenshot_name(url: str, width: int, height: int) -> str:
    """Default name for a capture that did not supply one."""
    host = urlparse(url).hostname or "unknown"
    stamp = time.strftime("%Y-%m-%dT%H-%M-%S", time.gmtime())
    return f"{host}_{width}x{height}_{stamp}"
