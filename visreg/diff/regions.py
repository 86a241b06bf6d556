"""Connected-component pass over the merged changed-pixel mask."""

from __future__ import annotations

import numpy as np
from scipy import ndimage

from visreg.models.diff import DiffRegion, RegionType, Severity, SizeMismatch

# 8-connectivity
_STRUCTURE = np.ones((3, 3), dtype=bool)


def classify_severity(mean_delta: float, cutoffs: tuple[float, float]) -> Severity:
    low, high = cutoffs
    if mean_delta > high:
        return "high"
    if mean_delta > low:
        return "medium"
    return "low"


def find_regions(
    mask: np.ndarray,
    delta: np.ndarray,
    added: np.ndarray,
    removed: np.ndarray,
    cutoffs: tuple[float, float] = (100.0, 200.0),
    min_pixels: int = 1,
) -> list[DiffRegion]:
    """Bounding boxes of connected changed pixels, in label (raster scan) order."""
    labeled, count = ndimage.label(mask, structure=_STRUCTURE)
    if count == 0:
        return []

    regions = []
    for label_id, window in enumerate(ndimage.find_objects(labeled), start=1):
        if window is None:
            continue
        member = labeled[window] == label_id
        pixel_count = int(member.sum())
        if pixel_count < min_pixels:
            continue
        mean_delta = float(delta[window][member].mean())

        if added[window][member].all():
            kind: RegionType = "addition"
        elif removed[window][member].all():
            kind = "deletion"
        else:
            kind = "modification"

        rows, cols = window
        regions.append(DiffRegion(
            x=cols.start,
            y=rows.start,
            width=cols.stop - cols.start,
            height=rows.stop - rows.start,
            severity=classify_severity(mean_delta, cutoffs),
            type=kind,
            pixel_count=pixel_count,
            mean_delta=round(mean_delta, 4),
        ))
    return regions


def mismatch_regions(mismatch: SizeMismatch) -> list[DiffRegion]:
    """Strips outside the overlapping area, as high-severity addition/deletion regions."""
    bw, bh = mismatch.baseline_width, mismatch.baseline_height
    cw, ch = mismatch.comparison_width, mismatch.comparison_height
    overlap_w, overlap_h = min(bw, cw), min(bh, ch)

    regions = []
    # Right strip spans the overlap rows, bottom strip spans the full larger width
    if bw != cw:
        kind: RegionType = "addition" if cw > bw else "deletion"
        regions.append(DiffRegion(
            x=overlap_w, y=0, width=abs(cw - bw), height=overlap_h,
            severity="high", type=kind, pixel_count=abs(cw - bw) * overlap_h, mean_delta=255.0,
        ))
    if bh != ch:
        kind = "addition" if ch > bh else "deletion"
        width = cw if ch > bh else bw
        regions.append(DiffRegion(
            x=0, y=overlap_h, width=width, height=abs(ch - bh),
            severity="high", type=kind, pixel_count=width * abs(ch - bh), mean_delta=255.0,
        ))
    return regions
