"""Perceptual similarity measures: windowed SSIM, average hash and a blended score."""

from __future__ import annotations

import numpy as np
from PIL import Image

# (0.01 * 255)^2 and (0.03 * 255)^2
SSIM_C1 = 6.5025
SSIM_C2 = 58.5225
SSIM_WINDOW = 8
HASH_SIZE = 32

SIMILARITY_WEIGHTS = {"ssim": 0.5, "hash": 0.3, "pixel": 0.2}


def grayscale(pixels: np.ndarray) -> np.ndarray:
    rgb = pixels[..., :3].astype(np.float64)
    return rgb @ np.array([0.299, 0.587, 0.114])


def _ssim(mean1, mean2, var1, var2, cov):
    numerator = (2 * mean1 * mean2 + SSIM_C1) * (2 * cov + SSIM_C2)
    denominator = (mean1 ** 2 + mean2 ** 2 + SSIM_C1) * (var1 + var2 + SSIM_C2)
    return numerator / denominator


def ssim(a: np.ndarray, b: np.ndarray, window: int = SSIM_WINDOW) -> float:
    """Mean SSIM over non-overlapping ``window`` x ``window`` tiles of two equal-size images.

    Images smaller than one tile are scored globally.
    """
    if a.shape[:2] != b.shape[:2]:
        raise ValueError("images must have the same dimensions for SSIM")
    g1, g2 = grayscale(a), grayscale(b)
    height, width = g1.shape
    rows, cols = height // window, width // window

    if rows == 0 or cols == 0:
        value = _ssim(g1.mean(), g2.mean(), g1.var(), g2.var(),
                      ((g1 - g1.mean()) * (g2 - g2.mean())).mean())
        return float(value)

    def tiles(g):
        cropped = g[:rows * window, :cols * window]
        return cropped.reshape(rows, window, cols, window).swapaxes(1, 2).reshape(rows, cols, -1)

    t1, t2 = tiles(g1), tiles(g2)
    mean1, mean2 = t1.mean(axis=-1), t2.mean(axis=-1)
    var1 = (t1 ** 2).mean(axis=-1) - mean1 ** 2
    var2 = (t2 ** 2).mean(axis=-1) - mean2 ** 2
    cov = (t1 * t2).mean(axis=-1) - mean1 * mean2
    return float(_ssim(mean1, mean2, var1, var2, cov).mean())


def average_hash(pixels: np.ndarray, size: int = HASH_SIZE) -> np.ndarray:
    """Bit array (size*size) marking pixels brighter than the mean of a size x size thumbnail."""
    img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).convert("L")
    small = np.asarray(img.resize((size, size), Image.Resampling.BILINEAR), dtype=np.float64)
    return (small > small.mean()).ravel()


def hamming_distance(hash1: np.ndarray, hash2: np.ndarray) -> int:
    if hash1.shape != hash2.shape:
        raise ValueError("hashes must be the same length")
    return int(np.count_nonzero(hash1 != hash2))


def pixel_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """1 minus the mean absolute channel difference, normalised to 0..1."""
    if a.shape != b.shape:
        return 0.0
    diff = np.abs(a.astype(np.int16) - b.astype(np.int16))
    return float(1.0 - diff.sum() / (diff.size * 255.0))


def similarity_score(a: np.ndarray, b: np.ndarray) -> float:
    """Weighted blend of SSIM, hash agreement and pixel similarity, clamped to 0..1."""
    if a.shape != b.shape:
        return 0.0
    h1, h2 = average_hash(a), average_hash(b)
    hash_score = 1.0 - hamming_distance(h1, h2) / h1.size
    score = (
        SIMILARITY_WEIGHTS["ssim"] * ssim(a, b)
        + SIMILARITY_WEIGHTS["hash"] * hash_score
        + SIMILARITY_WEIGHTS["pixel"] * pixel_similarity(a, b)
    )
    return max(0.0, min(1.0, score))
