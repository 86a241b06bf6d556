"""Screenshot and diff artefacts on disk (JSON documents plus image files)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from visreg.models.config import Viewport
from visreg.models.diff import DiffResult
from visreg.models.errors import now_iso
from visreg.models.screenshot import Dimensions, Screenshot, ScreenshotMetadata
from visreg.raster import (
    content_hash,
    decode_data_url,
    encode_data_url,
    raster_info,
)

logger = logging.getLogger(__name__)

_IMAGE_SUFFIXES = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg"}
_SUFFIX_BY_MIME = {"image/png": ".png", "image/jpeg": ".jpg"}


def save_screenshot(screenshot: Screenshot, output_dir: Path) -> Path:
    """Write ``<id>.json`` and the decoded raster beside it; returns the JSON path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"{screenshot.id}.json"
    with open(json_path, "w") as f:
        json.dump(screenshot.model_dump(), f, indent=2, default=str)

    mime, raw = decode_data_url(screenshot.raster_data)
    image_path = output_dir / f"{screenshot.id}{_SUFFIX_BY_MIME.get(mime, '.png')}"
    image_path.write_bytes(raw)
    logger.debug("Saved screenshot %s to %s", screenshot.id, json_path)
    return json_path


def load_screenshot(path: Path) -> Screenshot:
    """Load a screenshot from a JSON document or wrap a plain PNG/JPEG file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Screenshot not found: {path}")

    mime = _IMAGE_SUFFIXES.get(path.suffix.lower())
    if mime is None:
        with open(path) as f:
            return Screenshot(**json.load(f))

    raw = path.read_bytes()
    width, height, depth = raster_info(raw)
    digest = content_hash(raw)
    return Screenshot(
        id=f"file_{digest[:12]}",
        name=path.stem,
        url=path.resolve().as_uri(),
        viewport=Viewport(width=width, height=height),
        timestamp=now_iso(),
        raster_data=encode_data_url(raw, mime),
        metadata=ScreenshotMetadata(
            color_depth=depth,
            file_size=len(raw),
            dimensions=Dimensions(width=width, height=height),
            content_hash=digest,
        ),
    )


def write_diff_report(result: DiffResult, output_path: Path) -> None:
    """Write a machine-readable JSON report (the diff image is stored separately)."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    report = result.model_dump(exclude={"diff_image_url"})
    report["status"] = result.status
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)


def write_diff_image(result: DiffResult, output_path: Path) -> Path | None:
    """Write the diff visualisation PNG, if the result carries one."""
    if not result.diff_image_url:
        return None
    _, raw = decode_data_url(result.diff_image_url)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(raw)
    return output_path
