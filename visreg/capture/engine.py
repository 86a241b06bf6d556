"""Capture engine — drives a browser control to produce screenshot artifacts."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable, Optional

from visreg.browser.control import BrowserControl
from visreg.capture import orchestrators, scripts
from visreg.capture.errors import ElementNotFoundError, classify_failure
from visreg.capture.validation import validate_request, validate_viewport
from visreg.models.config import (
    BROWSER_ENGINES,
    CaptureOptions,
    CaptureOptionsOverride,
    RetryPolicy,
    Viewport,
    VisregConfig,
)
from visreg.models.errors import ErrorCode, ErrorInfo, now_iso
from visreg.models.screenshot import (
    CaptureRequest,
    CaptureResult,
    Dimensions,
    Screenshot,
    ScreenshotMetadata,
)
from visreg.raster import content_hash, encode_data_url, mime_for_format, raster_info
from visreg.url_utils import screenshot_name

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class CaptureEngine:
    """Validates capture requests and runs the browser sequence with retry/backoff.

    The engine keeps no per-capture state: a request is validated, executed
    (navigate, resize, optional probe/styling/waits, screenshot) and retried
    from the start on failure. Every outcome is returned as a CaptureResult.
    """

    def __init__(
        self,
        control: BrowserControl | None,
        config: VisregConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        config = config or VisregConfig()
        self.control = control
        self.sleep = sleep
        self.browser_engine: str = config.browser_engine
        self.default_viewport: Viewport = config.default_viewport
        self.capture_defaults: CaptureOptions = config.capture
        self.retry_policy: RetryPolicy = config.retry
        self.attempt_timeout: float = config.attempt_timeout_seconds
        self.max_width = config.max_viewport_width
        self.max_height = config.max_viewport_height

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        """Whether a browser control is registered and usable."""
        if self.control is None:
            return False
        try:
            return bool(self.control.is_available())
        except Exception as e:
            logger.debug("Browser control availability check failed: %s", e)
            return False

    def set_browser_engine(self, engine: str) -> None:
        if engine not in BROWSER_ENGINES:
            raise ValueError(f"Unknown browser engine: {engine!r} (expected one of {BROWSER_ENGINES})")
        self.browser_engine = engine

    def set_default_viewport(self, viewport: Viewport) -> None:
        error = validate_viewport(viewport, self.max_width, self.max_height)
        if error:
            raise ValueError(error.message)
        self.default_viewport = viewport

    def configure_retry(self, **changes) -> RetryPolicy:
        """Update the retry policy; invalid fields or values raise ValueError."""
        unknown = set(changes) - set(RetryPolicy.model_fields)
        if unknown:
            raise ValueError(f"Unknown retry settings: {sorted(unknown)}")
        self.retry_policy = RetryPolicy(**{**self.retry_policy.model_dump(), **changes})
        return self.retry_policy

    def available_browser_engines(self) -> list[str]:
        return list(BROWSER_ENGINES)

    async def test_connection(self) -> bool:
        """Round-trip a trivial script through the control."""
        if not self.is_available():
            return False
        try:
            await self.control.evaluate("() => document.title")
            return True
        except Exception as e:
            logger.warning("Browser connection test failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def capture(self, request: CaptureRequest, retry: RetryPolicy | None = None) -> CaptureResult:
        """Capture one screenshot; never raises for operational failures."""
        viewport = request.viewport or self.default_viewport
        engine_name = request.browser_engine or self.browser_engine
        options = (request.options or CaptureOptionsOverride()).apply_to(self.capture_defaults)
        # Snapshot the policy so a concurrent configure_retry cannot alter this loop
        policy = retry or self.retry_policy

        error = validate_request(request, viewport, self.max_width, self.max_height)
        if error:
            logger.warning("Rejected capture request (%s): %s", error.code.value, error.message)
            return CaptureResult.fail(error)

        if not self.is_available():
            return CaptureResult.fail(ErrorInfo(
                code=ErrorCode.BROWSER_UNAVAILABLE,
                message="No browser control is available",
                details={"url": request.url},
            ))

        last: CaptureResult | None = None
        attempts = 0
        for attempt in range(policy.max_retries + 1):
            attempts = attempt + 1
            result = await self._attempt(request, viewport, options, engine_name)
            if result.success:
                logger.info("Captured %s at %s (attempt %d)",
                            request.url, viewport.label, attempts)
                return result.model_copy(update={"attempts": attempts})

            last = result
            if attempt == policy.max_retries:
                break
            delay = policy.delay_for(attempt)
            logger.warning("Capture attempt %d for %s failed (%s: %s), retrying in %.2fs",
                           attempts, request.url, result.error.code.value, result.error.message, delay)
            await self.sleep(delay)

        error = last.error.model_copy(update={
            "details": {**last.error.details, "attempts": attempts, "browser_engine": engine_name},
        })
        logger.error("Capture of %s failed after %d attempt(s): %s",
                     request.url, attempts, error.message)
        return CaptureResult.fail(error, attempts=attempts)

    async def _attempt(
        self,
        request: CaptureRequest,
        viewport: Viewport,
        options: CaptureOptions,
        engine_name: str,
    ) -> CaptureResult:
        try:
            screenshot = await asyncio.wait_for(
                self._run_sequence(request, viewport, options, engine_name),
                timeout=self.attempt_timeout,
            )
        except asyncio.TimeoutError:
            return CaptureResult.fail(ErrorInfo(
                code=ErrorCode.TIMEOUT,
                message=f"Capture attempt timed out after {self.attempt_timeout:g}s",
                details={"url": request.url},
            ))
        except Exception as e:
            return CaptureResult.fail(ErrorInfo(
                code=classify_failure(e),
                message=str(e) or type(e).__name__,
                details={"url": request.url, "exception": type(e).__name__},
            ))
        return CaptureResult.ok(screenshot)

    async def _run_sequence(
        self,
        request: CaptureRequest,
        viewport: Viewport,
        options: CaptureOptions,
        engine_name: str,
    ) -> Screenshot:
        control = self.control
        # skip_navigation reuses a page the caller already loaded, sized and styled
        if not request.skip_navigation:
            await control.navigate(request.url)
            await control.resize(viewport.width, viewport.height)

        if request.selector:
            exists = await control.evaluate(scripts.ELEMENT_EXISTS, request.selector)
            if not exists:
                raise ElementNotFoundError(f"Element not found: {request.selector}")

        css = scripts.capture_css(options)
        if css and not request.skip_navigation:
            await control.evaluate(scripts.INJECT_STYLE, css)

        if options.delay_ms > 0:
            await control.wait_for(time_ms=options.delay_ms)

        await self._wait_ready(scripts.DOCUMENT_READY, "document load")
        if options.wait_for_fonts:
            await self._wait_ready(scripts.FONTS_READY, "fonts")
        if options.wait_for_images:
            await self._wait_ready(scripts.IMAGES_READY, "images")

        raster = await control.screenshot(
            selector=request.selector,
            full_page=options.full_page,
            format=options.format,
            quality=options.quality if options.format == "jpeg" else None,
            disable_animations=options.disable_animations,
        )
        width, height, color_depth = raster_info(raster)

        return Screenshot(
            id=f"shot_{uuid.uuid4().hex[:12]}",
            name=request.name or screenshot_name(request.url, viewport.width, viewport.height),
            url=request.url,
            selector=request.selector,
            viewport=viewport,
            browser_engine=engine_name,
            timestamp=now_iso(),
            raster_data=encode_data_url(raster, mime_for_format(options.format)),
            metadata=ScreenshotMetadata(
                user_agent=await self._user_agent(),
                pixel_ratio=viewport.device_scale_factor,
                color_depth=color_depth,
                file_size=len(raster),
                dimensions=Dimensions(width=width, height=height),
                content_hash=content_hash(raster),
            ),
            tags=tuple(request.tags),
        )

    async def _wait_ready(self, script: str, what: str) -> None:
        # Readiness waits are best-effort: a page that never settles is still captured
        started = time.monotonic()
        try:
            await self.control.evaluate(script)
        except Exception as e:
            logger.warning("Waiting for %s failed, continuing: %s", what, e)
            return
        logger.debug("Waited %.2fs for %s", time.monotonic() - started, what)

    async def _user_agent(self) -> str:
        try:
            ua = await self.control.evaluate(scripts.USER_AGENT)
        except Exception as e:
            logger.debug("Could not read user agent: %s", e)
            return "Unknown"
        return ua if isinstance(ua, str) and ua else "Unknown"

    # ------------------------------------------------------------------
    # Multi-capture helpers
    # ------------------------------------------------------------------

    async def capture_responsive(
        self,
        url: str,
        viewports: list[Viewport],
        options: Optional[CaptureOptionsOverride] = None,
        concurrency: int = 1,
    ) -> list[CaptureResult]:
        return await orchestrators.capture_responsive(self, url, viewports, options, concurrency)

    async def capture_animation_frames(
        self,
        url: str,
        selector: str,
        duration_ms: int,
        fps: int = 30,
    ) -> list[Screenshot]:
        return await orchestrators.capture_animation_frames(self, url, selector, duration_ms, fps)
