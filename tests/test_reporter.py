"""Tests for screenshot and diff artefact files."""

import json

import pytest

from visreg.diff.engine import DiffEngine
from visreg.models.diff import DiffResult
from visreg.models.errors import ErrorCode, ErrorInfo
from visreg.raster import content_hash, decode_data_url
from visreg.reporter.json_report import (
    load_screenshot,
    save_screenshot,
    write_diff_image,
    write_diff_report,
)


class TestScreenshotFiles:
    def test_save_writes_json_and_image(self, tmp_path, png_factory, screenshot_factory):
        data = png_factory(6, 4)
        shot = screenshot_factory(data, "shot_abc")

        json_path = save_screenshot(shot, tmp_path / "shots")

        assert json_path == tmp_path / "shots" / "shot_abc.json"
        assert (tmp_path / "shots" / "shot_abc.png").read_bytes() == data
        assert json.loads(json_path.read_text())["id"] == "shot_abc"

    def test_json_round_trip(self, tmp_path, png_factory, screenshot_factory):
        shot = screenshot_factory(png_factory(6, 4), "shot_abc")
        loaded = load_screenshot(save_screenshot(shot, tmp_path))
        assert loaded == shot

    def test_load_plain_png(self, tmp_path, png_factory):
        data = png_factory(12, 8)
        path = tmp_path / "home.png"
        path.write_bytes(data)

        shot = load_screenshot(path)

        assert shot.name == "home"
        assert shot.id == f"file_{content_hash(data)[:12]}"
        assert shot.url.startswith("file://")
        assert (shot.viewport.width, shot.viewport.height) == (12, 8)
        assert shot.metadata.file_size == len(data)
        assert decode_data_url(shot.raster_data) == ("image/png", data)

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_screenshot(tmp_path / "nope.json")


class TestDiffFiles:
    def test_report_and_image(self, tmp_path, png_factory, screenshot_factory):
        baseline = screenshot_factory(png_factory(20, 20), "a")
        comparison = screenshot_factory(png_factory(20, 20, patches=[(0, 0, 5, 5, (0, 0, 0, 255))]), "b")
        with DiffEngine(max_workers=1) as engine:
            result = engine.compare(baseline, comparison)

        report_path = tmp_path / "diffs" / "a__b.json"
        write_diff_report(result, report_path)
        image_path = write_diff_image(result, tmp_path / "diffs" / "a__b.png")

        report = json.loads(report_path.read_text())
        assert report["status"] == "failed"
        assert report["diff"]["metrics"]["changed_pixels"] == 25
        assert "diff_image_url" not in report
        assert image_path.read_bytes().startswith(b"\x89PNG")

    def test_error_report_without_image(self, tmp_path):
        result = DiffResult(success=False, error=ErrorInfo(code=ErrorCode.DECODE_FAILED, message="bad"))
        write_diff_report(result, tmp_path / "r.json")

        report = json.loads((tmp_path / "r.json").read_text())
        assert report["status"] == "error"
        assert report["error"]["code"] == "DECODE_FAILED"
        assert write_diff_image(result, tmp_path / "r.png") is None
