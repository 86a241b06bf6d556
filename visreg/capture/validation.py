"""Capture request validation, run before any browser I/O."""

from __future__ import annotations

from visreg.models.config import Viewport
from visreg.models.errors import ErrorCode, ErrorInfo
from visreg.models.screenshot import CaptureRequest
from visreg.url_utils import is_safe_selector, is_valid_url


def validate_viewport(viewport: Viewport, max_width: int, max_height: int) -> ErrorInfo | None:
    if viewport.width <= 0 or viewport.height <= 0:
        return ErrorInfo(
            code=ErrorCode.INVALID_VIEWPORT,
            message=f"Viewport dimensions must be positive, got {viewport.width}x{viewport.height}",
            details={"width": viewport.width, "height": viewport.height},
        )
    if viewport.width > max_width or viewport.height > max_height:
        return ErrorInfo(
            code=ErrorCode.INVALID_VIEWPORT,
            message=(
                f"Viewport {viewport.width}x{viewport.height} exceeds maximum "
                f"supported size ({max_width}x{max_height})"
            ),
            details={"width": viewport.width, "height": viewport.height,
                     "max_width": max_width, "max_height": max_height},
        )
    return None


def validate_request(
    request: CaptureRequest,
    viewport: Viewport,
    max_width: int,
    max_height: int,
) -> ErrorInfo | None:
    """Return the first validation failure (URL, viewport, selector order), or None."""
    if not is_valid_url(request.url):
        return ErrorInfo(
            code=ErrorCode.INVALID_URL,
            message=f"Invalid URL: {request.url!r}",
            details={"url": request.url},
        )

    viewport_error = validate_viewport(viewport, max_width, max_height)
    if viewport_error:
        return viewport_error

    if request.selector is not None and not is_safe_selector(request.selector):
        return ErrorInfo(
            code=ErrorCode.INVALID_SELECTOR,
            message=f"Invalid CSS selector: {request.selector!r}",
            details={"selector": request.selector},
        )
    return None
