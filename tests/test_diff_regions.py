"""Tests for region detection, severity and similarity measures."""

import numpy as np
import pytest

from visreg.diff.regions import classify_severity, find_regions, mismatch_regions
from visreg.diff.similarity import (
    average_hash,
    hamming_distance,
    pixel_similarity,
    similarity_score,
    ssim,
)
from visreg.models.diff import SizeMismatch


def _masks(height, width):
    return (
        np.zeros((height, width), dtype=bool),
        np.zeros((height, width), dtype=float),
        np.zeros((height, width), dtype=bool),
        np.zeros((height, width), dtype=bool),
    )


class TestFindRegions:
    def test_no_changes(self):
        assert find_regions(*_masks(10, 10)) == []

    def test_separate_blobs_become_separate_regions(self):
        mask, delta, added, removed = _masks(20, 20)
        mask[2:5, 3:7] = True
        delta[2:5, 3:7] = 50.0
        mask[10:12, 10:12] = True
        delta[10:12, 10:12] = 250.0

        regions = find_regions(mask, delta, added, removed)

        assert [(r.x, r.y, r.width, r.height) for r in regions] == [(3, 2, 4, 3), (10, 10, 2, 2)]
        assert [r.severity for r in regions] == ["low", "high"]
        assert regions[0].pixel_count == 12
        assert regions[0].mean_delta == pytest.approx(50.0)

    def test_diagonal_neighbours_are_connected(self):
        mask, delta, added, removed = _masks(5, 5)
        mask[0, 0] = mask[1, 1] = mask[2, 2] = True
        regions = find_regions(mask, delta, added, removed)
        assert len(regions) == 1
        assert (regions[0].width, regions[0].height) == (3, 3)

    def test_min_pixels_drops_specks(self):
        mask, delta, added, removed = _masks(5, 5)
        mask[0, 0] = True
        mask[3:5, 3:5] = True
        regions = find_regions(mask, delta, added, removed, min_pixels=2)
        assert [(r.x, r.y) for r in regions] == [(3, 3)]

    def test_region_types(self):
        mask, delta, added, removed = _masks(3, 9)
        mask[:, 0:2] = added[:, 0:2] = True
        mask[:, 4:6] = removed[:, 4:6] = True
        mask[:, 8] = True
        regions = find_regions(mask, delta, added, removed)
        assert [r.type for r in regions] == ["addition", "deletion", "modification"]

    @pytest.mark.parametrize("mean,expected", [
        (0.0, "low"), (100.0, "low"), (100.1, "medium"), (200.0, "medium"), (200.1, "high"), (255.0, "high"),
    ])
    def test_severity_cutoffs(self, mean, expected):
        assert classify_severity(mean, (100.0, 200.0)) == expected

    def test_custom_cutoffs(self):
        assert classify_severity(30.0, (10.0, 20.0)) == "high"


class TestMismatchRegions:
    def test_comparison_wider_and_taller(self):
        regions = mismatch_regions(SizeMismatch(
            baseline_width=100, baseline_height=50, comparison_width=120, comparison_height=60,
        ))
        assert [(r.x, r.y, r.width, r.height, r.type) for r in regions] == [
            (100, 0, 20, 50, "addition"),
            (0, 50, 120, 10, "addition"),
        ]
        assert all(r.severity == "high" for r in regions)

    def test_baseline_taller(self):
        regions = mismatch_regions(SizeMismatch(
            baseline_width=100, baseline_height=80, comparison_width=100, comparison_height=50,
        ))
        assert [(r.x, r.y, r.width, r.height, r.type) for r in regions] == [(0, 50, 100, 30, "deletion")]


class TestSimilarity:
    def _image(self, seed, shape=(32, 48)):
        rng = np.random.default_rng(seed)
        img = rng.integers(0, 256, size=(*shape, 4), dtype=np.uint8)
        img[..., 3] = 255
        return img

    def test_ssim_of_identical_images_is_one(self):
        img = self._image(1)
        assert ssim(img, img.copy()) == pytest.approx(1.0)

    def test_ssim_drops_for_unrelated_images(self):
        assert ssim(self._image(1), self._image(2)) < 0.5

    def test_ssim_on_images_smaller_than_a_window(self):
        img = self._image(3, shape=(4, 4))
        assert ssim(img, img.copy()) == pytest.approx(1.0)

    def test_ssim_rejects_different_sizes(self):
        with pytest.raises(ValueError):
            ssim(self._image(1, (8, 8)), self._image(1, (8, 16)))

    def test_average_hash_and_hamming(self):
        img = self._image(4)
        h = average_hash(img)
        assert h.shape == (32 * 32,)
        assert hamming_distance(h, average_hash(img.copy())) == 0
        assert hamming_distance(h, ~h) == h.size
        with pytest.raises(ValueError):
            hamming_distance(h, h[:10])

    def test_pixel_similarity(self):
        white = np.full((2, 2, 4), 255, dtype=np.uint8)
        black = white.copy()
        black[..., :3] = 0
        assert pixel_similarity(white, white) == 1.0
        assert pixel_similarity(white, black) == pytest.approx(0.25)
        assert pixel_similarity(white, white[:1]) == 0.0

    def test_similarity_score_bounds(self):
        a, b = self._image(5), self._image(6)
        assert similarity_score(a, a.copy()) == pytest.approx(1.0)
        assert 0.0 <= similarity_score(a, b) < 1.0
        assert similarity_score(a, a[:10]) == 0.0
