"""Responsive and animation capture built on top of the capture engine."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Optional

from visreg.capture import scripts
from visreg.capture.errors import ElementNotFoundError
from visreg.capture.validation import validate_request
from visreg.models.config import CaptureOptionsOverride, Viewport
from visreg.models.errors import ErrorInfo, ErrorCode
from visreg.models.screenshot import CaptureRequest, CaptureResult, Screenshot

if TYPE_CHECKING:
    from visreg.capture.engine import CaptureEngine

logger = logging.getLogger(__name__)


async def capture_responsive(
    engine: CaptureEngine,
    url: str,
    viewports: list[Viewport],
    options: Optional[CaptureOptionsOverride] = None,
    concurrency: int = 1,
) -> list[CaptureResult]:
    """Capture one URL at each viewport.

    Results keep the order of ``viewports``; a failed viewport yields a
    failed result in place and never aborts the others. ``concurrency`` bounds
    how many captures run at once (1 keeps a single shared page consistent).
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    semaphore = asyncio.Semaphore(concurrency)

    async def _capture_one(viewport: Viewport) -> CaptureResult:
        async with semaphore:
            request = CaptureRequest(
                url=url,
                viewport=viewport,
                options=options,
                name=viewport.label,
                tags=["responsive", viewport.label],
            )
            return await engine.capture(request)

    outcomes = await asyncio.gather(
        *(_capture_one(v) for v in viewports), return_exceptions=True
    )

    results: list[CaptureResult] = []
    for viewport, outcome in zip(viewports, outcomes):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.error("Responsive capture at %s raised: %s", viewport.label, outcome)
            outcome = CaptureResult.fail(ErrorInfo(
                code=ErrorCode.CAPTURE_FAILED,
                message=str(outcome) or type(outcome).__name__,
                details={"url": url, "viewport": viewport.label},
            ))
        results.append(outcome)

    succeeded = sum(1 for r in results if r.success)
    logger.info("Responsive capture of %s: %d/%d viewports succeeded",
                url, succeeded, len(results))
    return results


def frame_count(duration_ms: float, fps: float) -> int:
    """Number of frames sampled over ``duration_ms`` at ``fps`` (round half up)."""
    return int(math.floor(duration_ms / 1000 * fps + 0.5))


async def capture_animation_frames(
    engine: CaptureEngine,
    url: str,
    selector: str,
    duration_ms: int,
    fps: int = 30,
) -> list[Screenshot]:
    """Sample an element at a fixed rate; best effort.

    The page is loaded once. Frames that fail to capture are dropped; a failure
    while loading the page or locating the element yields an empty list.
    """
    if fps <= 0 or duration_ms < 0:
        raise ValueError("fps must be positive and duration_ms non-negative")

    total = frame_count(duration_ms, fps)
    interval = 1.0 / fps

    probe = CaptureRequest(url=url, selector=selector)
    error = validate_request(probe, engine.default_viewport, engine.max_width, engine.max_height)
    if error:
        logger.error("Animation capture rejected (%s): %s", error.code.value, error.message)
        return []
    if not engine.is_available():
        logger.error("Animation capture skipped: no browser control available")
        return []
    frame_options = CaptureOptionsOverride(
        disable_animations=False, wait_for_fonts=False, wait_for_images=False,
    )
    viewport = engine.default_viewport
    try:
        await engine.control.navigate(url)
        await engine.control.resize(viewport.width, viewport.height)
        exists = await engine.control.evaluate(scripts.ELEMENT_EXISTS, selector)
        if not exists:
            raise ElementNotFoundError(f"Element not found: {selector}")
        # Styled once here; frames reuse the page as is
        css = scripts.capture_css(frame_options.apply_to(engine.capture_defaults))
        if css:
            await engine.control.evaluate(scripts.INJECT_STYLE, css)
    except Exception as e:
        logger.error("Animation capture of %s failed during page load: %s", url, e)
        return []

    frames: list[Screenshot] = []
    for n in range(1, total + 1):
        await engine.sleep(interval)
        request = CaptureRequest(
            url=url,
            selector=selector,
            name=f"Animation Frame {n}",
            tags=["animation", f"frame-{n}"],
            options=frame_options,
            skip_navigation=True,
        )
        result = await engine.capture(request)
        if result.success:
            frames.append(result.screenshot)
        else:
            logger.warning("Dropped animation frame %d: %s", n, result.error.message)

    logger.info("Captured %d/%d animation frames for %s", len(frames), total, selector)
    return frames
