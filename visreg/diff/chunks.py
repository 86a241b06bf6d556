"""Row-band chunking and the per-chunk pixel comparison.

``diff_chunk`` is a pure function: it reads the shared, read-only baseline and
comparison buffers and writes only to the ChunkResult it returns.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

# Largest possible Euclidean distance between two RGB colours
MAX_RGB_DISTANCE = math.sqrt(3 * 255 ** 2)

# ITU-R BT.601 luma weights
_LUMA = np.array([0.299, 0.587, 0.114])


@dataclass(frozen=True)
class ChunkTask:
    baseline: np.ndarray  # (H, W, 4) uint8, overlap only
    comparison: np.ndarray
    start: int  # first row, inclusive
    end: int  # last row, exclusive
    threshold: float = 0.1
    ignore_antialiasing: bool = False
    ignore_colors: bool = False
    ignore_regions: tuple[tuple[int, int, int, int], ...] = ()


@dataclass
class ChunkResult:
    start: int
    end: int
    mask: np.ndarray  # bool, changed pixels
    delta: np.ndarray  # float64, 0..255
    added: np.ndarray  # bool, comparison opaque where baseline transparent
    removed: np.ndarray  # bool, the converse
    changed_pixels: int
    delta_sum: float  # sum of delta over changed pixels
    max_delta: float


def plan_chunks(height: int, workers: int) -> list[tuple[int, int]]:
    """Split ``height`` rows into contiguous half-open bands of ceil(height/workers) rows."""
    if height <= 0:
        return []
    workers = max(1, workers)
    rows = math.ceil(height / workers)
    return [(start, min(start + rows, height)) for start in range(0, height, rows)]


def _blend_over_white(pixels: np.ndarray) -> np.ndarray:
    rgb = pixels[..., :3].astype(np.float64)
    alpha = pixels[..., 3:4].astype(np.float64) / 255.0
    return rgb * alpha + 255.0 * (1.0 - alpha)


def pixel_delta(baseline: np.ndarray, comparison: np.ndarray, ignore_colors: bool = False) -> np.ndarray:
    """Per-pixel colour delta in 0..255 between two RGBA arrays of equal shape."""
    a = _blend_over_white(baseline)
    b = _blend_over_white(comparison)
    if ignore_colors:
        return np.abs(a @ _LUMA - b @ _LUMA)
    distance = np.sqrt(np.sum((a - b) ** 2, axis=-1))
    return np.minimum(255.0, distance / MAX_RGB_DISTANCE * 255.0)


def _ignore_mask(regions, top: int, bottom: int, width: int) -> np.ndarray:
    ignored = np.zeros((bottom - top, width), dtype=bool)
    for x, y, w, h in regions:
        y0, y1 = max(y, top), min(y + h, bottom)
        x0, x1 = max(x, 0), min(x + w, width)
        if y0 < y1 and x0 < x1:
            ignored[y0 - top:y1 - top, x0:x1] = True
    return ignored


def _has_changed_neighbour(changed: np.ndarray) -> np.ndarray:
    padded = np.pad(changed, 1, mode="constant", constant_values=False)
    rows, cols = changed.shape
    found = np.zeros_like(changed)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dy == 0 and dx == 0:
                continue
            found |= padded[1 + dy:1 + dy + rows, 1 + dx:1 + dx + cols]
    return found


def diff_chunk(task: ChunkTask) -> ChunkResult:
    """Compare rows [task.start, task.end) of the two buffers."""
    height, width = task.baseline.shape[:2]
    # One halo row on each side so isolation checks see across band edges
    top = max(0, task.start - 1) if task.ignore_antialiasing else task.start
    bottom = min(height, task.end + 1) if task.ignore_antialiasing else task.end

    base = task.baseline[top:bottom]
    comp = task.comparison[top:bottom]
    delta = pixel_delta(base, comp, task.ignore_colors)
    ignored = _ignore_mask(task.ignore_regions, top, bottom, width)
    delta[ignored] = 0.0

    changed = delta > task.threshold * 255.0
    if task.ignore_antialiasing:
        changed &= _has_changed_neighbour(changed)

    inner = slice(task.start - top, task.start - top + (task.end - task.start))
    changed = changed[inner]
    delta = delta[inner]
    base_alpha = base[inner, :, 3]
    comp_alpha = comp[inner, :, 3]

    changed_delta = delta[changed]
    return ChunkResult(
        start=task.start,
        end=task.end,
        mask=changed,
        delta=delta,
        added=(base_alpha == 0) & (comp_alpha > 0),
        removed=(base_alpha > 0) & (comp_alpha == 0),
        changed_pixels=int(changed.sum()),
        delta_sum=float(changed_delta.sum()),
        max_delta=float(delta.max()) if delta.size else 0.0,
    )
