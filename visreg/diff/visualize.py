"""Diff visualisation: baseline, comparison and change mask side by side."""

from __future__ import annotations

import numpy as np
from PIL import Image, ImageDraw

from visreg.models.diff import DiffRegion
from visreg.raster import encode_data_url, image_to_bytes

BASELINE_TINT = (255, 0, 0, 96)
COMPARISON_TINT = (0, 200, 0, 96)
REGION_OUTLINE = (255, 0, 0, 255)
GUTTER = 4


def _panel(pixels: np.ndarray, regions: list[DiffRegion], tint) -> Image.Image:
    base = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    for r in regions:
        draw.rectangle([r.x, r.y, r.x + r.width - 1, r.y + r.height - 1], fill=tint)
    return Image.alpha_composite(base, overlay)


def _mask_panel(mask: np.ndarray, regions: list[DiffRegion], size: tuple[int, int]) -> Image.Image:
    panel = Image.new("RGBA", size, (0, 0, 0, 255))
    if mask.size:
        white = Image.fromarray(np.where(mask, 255, 0).astype(np.uint8))
        panel.paste((255, 255, 255, 255), (0, 0, white.width, white.height), white)
    draw = ImageDraw.Draw(panel)
    for r in regions:
        draw.rectangle([r.x, r.y, r.x + r.width - 1, r.y + r.height - 1], outline=REGION_OUTLINE)
    return panel


def render_diff_image(
    baseline: np.ndarray,
    comparison: np.ndarray,
    mask: np.ndarray,
    regions: list[DiffRegion],
) -> Image.Image:
    """Three panels left to right: baseline (red tint), comparison (green tint), change mask."""
    left = _panel(baseline, regions, BASELINE_TINT)
    middle = _panel(comparison, regions, COMPARISON_TINT)
    height = max(left.height, middle.height)
    right = _mask_panel(mask, regions, (max(left.width, middle.width), height))

    canvas = Image.new("RGBA", (left.width + middle.width + right.width + 2 * GUTTER, height),
                       (128, 128, 128, 255))
    canvas.paste(left, (0, 0))
    canvas.paste(middle, (left.width + GUTTER, 0))
    canvas.paste(right, (left.width + middle.width + 2 * GUTTER, 0))
    return canvas


def diff_image_data_url(baseline, comparison, mask, regions) -> str:
    return encode_data_url(image_to_bytes(render_diff_image(baseline, comparison, mask, regions)), "image/png")
