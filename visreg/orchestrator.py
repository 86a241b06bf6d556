"""Pipeline orchestrator — wires browser control, capture and diff engines to disk artefacts."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable

from visreg.browser.control import BrowserControl
from visreg.browser.playwright_control import PlaywrightBrowserControl
from visreg.capture.engine import CaptureEngine
from visreg.diff.engine import DiffEngine
from visreg.models.config import CaptureOptionsOverride, Viewport, VisregConfig
from visreg.models.diff import DiffResult
from visreg.models.screenshot import CaptureRequest, CaptureResult
from visreg.reporter.json_report import (
    load_screenshot,
    save_screenshot,
    write_diff_image,
    write_diff_report,
)

logger = logging.getLogger(__name__)

ControlFactory = Callable[[VisregConfig], BrowserControl]


def playwright_control(config: VisregConfig) -> PlaywrightBrowserControl:
    return PlaywrightBrowserControl(
        engine=config.browser_engine,
        viewport=config.default_viewport,
        headless=config.headless,
        user_agent=config.user_agent,
        navigation_timeout_ms=int(config.attempt_timeout_seconds * 1000),
    )


class Orchestrator:
    """Runs the CLI workflows: capture to disk, then compare saved screenshots."""

    def __init__(self, config: VisregConfig, control_factory: ControlFactory = playwright_control):
        self.config = config
        self.control_factory = control_factory
        self.output_dir = Path(config.output_dir)
        self.screenshots_dir = self.output_dir / "screenshots"
        self.diffs_dir = self.output_dir / "diffs"

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def _with_engine(self, work):
        control = self.control_factory(self.config)
        async with control:
            engine = CaptureEngine(control, self.config)
            return await work(engine)

    def _save(self, result: CaptureResult) -> Path | None:
        if not result.success:
            return None
        return save_screenshot(result.screenshot, self.screenshots_dir)

    def run_capture(
        self,
        url: str,
        selector: str | None = None,
        viewport: Viewport | None = None,
        full_page: bool = False,
        name: str = "",
    ) -> tuple[CaptureResult, Path | None]:
        """Capture one screenshot and save it; returns the result and JSON path."""
        request = CaptureRequest(
            url=url,
            selector=selector,
            viewport=viewport,
            options=CaptureOptionsOverride(full_page=full_page),
            name=name,
        )
        start = time.time()
        result = asyncio.run(self._with_engine(lambda engine: engine.capture(request)))
        logger.info("Capture finished in %.1fs (success=%s)", time.time() - start, result.success)
        return result, self._save(result)

    def run_responsive(
        self, url: str, viewports: list[Viewport] | None = None, concurrency: int = 1,
    ) -> list[tuple[CaptureResult, Path | None]]:
        viewports = viewports or self.config.viewports
        results = asyncio.run(self._with_engine(
            lambda engine: engine.capture_responsive(url, viewports, concurrency=concurrency)
        ))
        return [(r, self._save(r)) for r in results]

    def run_animation(self, url: str, selector: str, duration_ms: int, fps: int = 30) -> list[Path]:
        frames = asyncio.run(self._with_engine(
            lambda engine: engine.capture_animation_frames(url, selector, duration_ms, fps)
        ))
        return [save_screenshot(frame, self.screenshots_dir / "animation") for frame in frames]

    # ------------------------------------------------------------------
    # Compare
    # ------------------------------------------------------------------

    def run_compare(
        self, baseline_path: Path, comparison_path: Path, threshold: float | None = None,
    ) -> dict:
        baseline = load_screenshot(baseline_path)
        comparison = load_screenshot(comparison_path)
        with DiffEngine(self.config) as engine:
            result = engine.compare(baseline, comparison, threshold=threshold)
        return self._write_diff(result, baseline.id, comparison.id)

    def run_batch(
        self, baseline_path: Path, comparison_paths: list[Path], threshold: float | None = None,
    ) -> list[dict]:
        baseline = load_screenshot(baseline_path)
        comparisons = [load_screenshot(p) for p in comparison_paths]
        with DiffEngine(self.config) as engine:
            results = engine.batch_compare(baseline, comparisons, threshold=threshold)
        return [self._write_diff(r, baseline.id, c.id) for r, c in zip(results, comparisons)]

    def _write_diff(self, result: DiffResult, baseline_id: str, comparison_id: str) -> dict:
        stem = f"{baseline_id}__{comparison_id}"
        report_path = self.diffs_dir / f"{stem}.json"
        write_diff_report(result, report_path)
        image_path = write_diff_image(result, self.diffs_dir / f"{stem}.png")
        logger.debug("Wrote diff report %s", report_path)
        return {"result": result, "report": report_path, "image": image_path}
