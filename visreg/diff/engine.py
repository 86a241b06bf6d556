"""Diff engine — chunked, worker-parallel screenshot comparison."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from typing import Optional

import numpy as np

from visreg.diff import similarity
from visreg.diff.chunks import ChunkTask, diff_chunk, plan_chunks
from visreg.diff.pool import ChunkExecutor, ChunkProcessingError, default_worker_count
from visreg.diff.regions import find_regions, mismatch_regions
from visreg.diff.visualize import diff_image_data_url
from visreg.models.config import DiffOptions, VisregConfig
from visreg.models.diff import DiffMetrics, DiffResult, DiffStatus, SizeMismatch, VisualDiff
from visreg.models.errors import ErrorCode, ErrorInfo, now_iso
from visreg.models.screenshot import Screenshot
from visreg.raster import RasterDecodeError, load_rgba

logger = logging.getLogger(__name__)

# Above this many pixels, suggest_options raises the noise threshold
LARGE_IMAGE_PIXELS = 1_000_000
# Mean neighbouring-pixel channel difference marking a busy image
BUSY_IMAGE_COMPLEXITY = 50.0


class DiffEngine:
    """Compares screenshots pixel by pixel and summarises the changes.

    The overlapping area of the two images is split into row bands, each band
    is diffed independently (on a thread pool when one is available) and the
    band results are merged in band order. The band plan depends only on the
    image height and ``max_workers``, so the pooled and in-process paths
    produce identical results.
    """

    def __init__(
        self,
        config: VisregConfig | None = None,
        max_workers: int | None = None,
        use_workers: bool = True,
    ):
        config = config or VisregConfig()
        self.default_options: DiffOptions = config.diff
        self.default_threshold: float = config.diff_threshold
        self.max_workers: int = max_workers or config.max_workers or default_worker_count()
        self.executor = ChunkExecutor(self.max_workers, use_workers)
        self._timings: dict[str, list[float]] = defaultdict(list)
        self._stats_lock = threading.Lock()
        self.comparisons = 0

    def __enter__(self) -> "DiffEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.executor.shutdown()

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def compare(
        self,
        baseline: Screenshot,
        comparison: Screenshot,
        options: DiffOptions | None = None,
        threshold: float | None = None,
    ) -> DiffResult:
        """Compare two screenshots; failures come back as an error DiffResult."""
        try:
            with self._timed("decode"):
                base = load_rgba(baseline.raster_data)
                comp = load_rgba(comparison.raster_data)
        except RasterDecodeError as e:
            return self._decode_failed(baseline, comparison, e)
        return self._compare_decoded(base, comp, baseline.id, comparison.id, options, threshold)

    def batch_compare(
        self,
        baseline: Screenshot,
        comparisons: list[Screenshot],
        options: DiffOptions | None = None,
        threshold: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[DiffResult]:
        """Compare each screenshot against one shared baseline, in input order.

        Once ``cancel_event`` is set, comparisons not yet started return a
        CANCELLED error; a comparison already running completes.
        """
        base: Optional[np.ndarray] = None
        base_error: Optional[RasterDecodeError] = None
        results: list[DiffResult] = []

        for index, comparison in enumerate(comparisons):
            if cancel_event is not None and cancel_event.is_set():
                results.append(DiffResult(success=False, error=ErrorInfo(
                    code=ErrorCode.CANCELLED,
                    message="Comparison cancelled before it started",
                    details={"baseline_id": baseline.id, "comparison_id": comparison.id, "index": index},
                )))
                continue

            # Decode the shared baseline once, on first use
            if base is None and base_error is None:
                try:
                    with self._timed("decode"):
                        base = load_rgba(baseline.raster_data)
                except RasterDecodeError as e:
                    base_error = e
            if base_error is not None:
                results.append(self._decode_failed(baseline, comparison, base_error))
                continue

            try:
                with self._timed("decode"):
                    comp = load_rgba(comparison.raster_data)
            except RasterDecodeError as e:
                results.append(self._decode_failed(baseline, comparison, e))
                continue
            results.append(self._compare_decoded(base, comp, baseline.id, comparison.id, options, threshold))

        logger.info("Batch compare: %d comparison(s), %d passed",
                    len(results), sum(1 for r in results if r.status == "passed"))
        return results

    def _compare_decoded(
        self,
        base: np.ndarray,
        comp: np.ndarray,
        baseline_id: str,
        comparison_id: str,
        options: DiffOptions | None,
        threshold: float | None,
    ) -> DiffResult:
        options = options or self.default_options
        threshold = self.default_threshold if threshold is None else threshold
        started = time.perf_counter()

        try:
            diff, image_url = self._diff_arrays(base, comp, baseline_id, comparison_id, options, threshold)
        except ChunkProcessingError as e:
            logger.error("Diff %s vs %s failed in chunk %d: %s", baseline_id, comparison_id, e.index, e.cause)
            return DiffResult(success=False, error=ErrorInfo(
                code=ErrorCode.PROCESSING_ERROR,
                message=str(e),
                details={"baseline_id": baseline_id, "comparison_id": comparison_id, "chunk": e.index},
            ))

        self._record("total", time.perf_counter() - started)
        with self._stats_lock:
            self.comparisons += 1
        logger.info("Diff %s vs %s: %s (%.4f%% changed, %d region(s))",
                    baseline_id, comparison_id, diff.status,
                    diff.metrics.percentage_changed, diff.metrics.regions)
        return DiffResult(success=True, diff=diff, diff_image_url=image_url)

    def _diff_arrays(self, base, comp, baseline_id, comparison_id, options, threshold):
        bh, bw = base.shape[:2]
        ch, cw = comp.shape[:2]
        height, width = min(bh, ch), min(bw, cw)
        mismatch = None
        if (bh, bw) != (ch, cw):
            mismatch = SizeMismatch(baseline_width=bw, baseline_height=bh,
                                    comparison_width=cw, comparison_height=ch)
            logger.warning("Size mismatch %dx%d vs %dx%d, comparing the %dx%d overlap",
                           bw, bh, cw, ch, width, height)
        base = base[:height, :width]
        comp = comp[:height, :width]

        ignore = tuple((r.x, r.y, r.width, r.height) for r in options.ignore_regions)
        tasks = [
            ChunkTask(
                baseline=base, comparison=comp, start=start, end=end,
                threshold=options.threshold,
                ignore_antialiasing=options.ignore_antialiasing,
                ignore_colors=options.ignore_colors,
                ignore_regions=ignore,
            )
            for start, end in plan_chunks(height, self.max_workers)
        ]
        with self._timed("chunks"):
            chunks = self.executor.run(diff_chunk, tasks)

        with self._timed("merge"):
            mask = np.concatenate([c.mask for c in chunks])
            delta = np.concatenate([c.delta for c in chunks])
            added = np.concatenate([c.added for c in chunks])
            removed = np.concatenate([c.removed for c in chunks])
            changed = 0
            delta_sum = 0.0
            max_delta = 0.0
            for c in chunks:
                changed += c.changed_pixels
                delta_sum += c.delta_sum
                max_delta = max(max_delta, c.max_delta)

            regions = find_regions(mask, delta, added, removed,
                                   options.severity_cutoffs, options.min_region_pixels)
            if mismatch is not None:
                regions.extend(mismatch_regions(mismatch))

        with self._timed("ssim"):
            ssim_score = similarity.ssim(base, comp)

        total = height * width
        percentage = changed * 100.0 / total
        status: DiffStatus
        if percentage > threshold:
            status = "failed"
        elif mismatch is not None:
            status = "warning"
        else:
            status = "passed"

        metrics = DiffMetrics(
            total_pixels=total,
            changed_pixels=changed,
            percentage_changed=percentage,
            mean_color_delta=delta_sum / changed if changed else 0.0,
            max_color_delta=max_delta,
            regions=len(regions),
            ssim=ssim_score,
        )
        diff = VisualDiff(
            id=f"diff_{uuid.uuid4().hex[:12]}",
            baseline_id=baseline_id,
            comparison_id=comparison_id,
            timestamp=now_iso(),
            status=status,
            differences=tuple(regions),
            metrics=metrics,
            threshold=threshold,
            size_mismatch=mismatch,
        )

        image_url = None
        if options.generate_diff_image and regions:
            with self._timed("render"):
                image_url = diff_image_data_url(base, comp, mask, regions)
        return diff, image_url

    def _decode_failed(self, baseline: Screenshot, comparison: Screenshot, err: Exception) -> DiffResult:
        logger.error("Could not decode screenshots %s / %s: %s", baseline.id, comparison.id, err)
        return DiffResult(success=False, error=ErrorInfo(
            code=ErrorCode.DECODE_FAILED,
            message=str(err),
            details={"baseline_id": baseline.id, "comparison_id": comparison.id},
        ))

    # ------------------------------------------------------------------
    # Analysis helpers
    # ------------------------------------------------------------------

    def similarity_score(self, a: Screenshot, b: Screenshot) -> float:
        """Blended perceptual similarity in 0..1; 0.0 when either image cannot be read."""
        try:
            pa, pb = load_rgba(a.raster_data), load_rgba(b.raster_data)
        except RasterDecodeError as e:
            logger.warning("Similarity score unavailable: %s", e)
            return 0.0
        return similarity.similarity_score(pa, pb)

    def suggest_options(self, screenshot: Screenshot) -> DiffOptions:
        """Diff options tuned to the image: more tolerant for large or busy images."""
        pixels = load_rgba(screenshot.raster_data)
        height, width = pixels.shape[:2]
        threshold = 0.3 if height * width > LARGE_IMAGE_PIXELS else 0.2

        rgb = pixels[..., :3].astype(np.int16).reshape(-1, 3)
        complexity = float(np.abs(np.diff(rgb, axis=0)).sum(axis=1).mean()) if len(rgb) > 1 else 0.0
        if complexity > BUSY_IMAGE_COMPLEXITY:
            threshold = max(threshold, 0.3)
        logger.debug("Suggested threshold %.2f for %dx%d image (complexity %.1f)",
                     threshold, width, height, complexity)
        return self.default_options.model_copy(update={"threshold": threshold, "ignore_antialiasing": True})

    def worker_status(self) -> dict:
        return self.executor.status()

    def performance_stats(self) -> dict:
        """Per-stage timing summary in milliseconds."""
        with self._stats_lock:
            stages = {
                stage: {
                    "count": len(samples),
                    "total_ms": round(sum(samples) * 1000, 3),
                    "mean_ms": round(sum(samples) * 1000 / len(samples), 3),
                }
                for stage, samples in self._timings.items() if samples
            }
            return {"comparisons": self.comparisons, "stages": stages}

    def _record(self, stage: str, seconds: float) -> None:
        with self._stats_lock:
            self._timings[stage].append(seconds)

    @contextmanager
    def _timed(self, stage: str):
        started = time.perf_counter()
        try:
            yield
        finally:
            self._record(stage, time.perf_counter() - started)
