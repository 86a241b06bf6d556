"""Configuration models for the visual regression toolkit."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

BrowserEngineName = Literal["chromium", "firefox", "webkit"]
BROWSER_ENGINES: tuple[str, ...] = ("chromium", "firefox", "webkit")


class Viewport(BaseModel):
    # Bounds are checked by the capture engine, not here, so that a bad
    # viewport surfaces as INVALID_VIEWPORT instead of a construction error.
    width: int = 1920
    height: int = 1080
    device_scale_factor: float = 1.0
    is_mobile: bool = False
    name: str = ""

    @property
    def label(self) -> str:
        return f"{self.width}x{self.height}"


class CaptureOptions(BaseModel):
    full_page: bool = False
    hide_scrollbars: bool = True
    disable_animations: bool = False
    normalize_rendering: bool = True
    wait_for_fonts: bool = True
    wait_for_images: bool = True
    delay_ms: int = Field(default=0, ge=0)
    quality: int = Field(default=90, ge=0, le=100)
    format: Literal["png", "jpeg"] = "png"


class CaptureOptionsOverride(BaseModel):
    """Per-request capture options; unset fields fall back to engine defaults."""
    full_page: Optional[bool] = None
    hide_scrollbars: Optional[bool] = None
    disable_animations: Optional[bool] = None
    normalize_rendering: Optional[bool] = None
    wait_for_fonts: Optional[bool] = None
    wait_for_images: Optional[bool] = None
    delay_ms: Optional[int] = Field(default=None, ge=0)
    quality: Optional[int] = Field(default=None, ge=0, le=100)
    format: Optional[Literal["png", "jpeg"]] = None

    def apply_to(self, defaults: CaptureOptions) -> CaptureOptions:
        updates = self.model_dump(exclude_none=True)
        return defaults.model_copy(update=updates)


class RetryPolicy(BaseModel):
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)  # seconds
    backoff_multiplier: float = Field(default=2.0, ge=1.0)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (0-based) failed attempt."""
        return self.retry_delay * self.backoff_multiplier ** attempt


class IgnoreRegion(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class DiffOptions(BaseModel):
    # Per-pixel noise threshold as a fraction of the maximum colour distance
    threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    ignore_antialiasing: bool = False
    ignore_colors: bool = False
    ignore_regions: list[IgnoreRegion] = Field(default_factory=list)
    # Mean-delta cutoffs (0..255): above second = high, above first = medium
    severity_cutoffs: tuple[float, float] = (100.0, 200.0)
    min_region_pixels: int = Field(default=1, ge=1)
    generate_diff_image: bool = True

    @field_validator("severity_cutoffs")
    @classmethod
    def check_cutoffs(cls, v: tuple[float, float]) -> tuple[float, float]:
        low, high = v
        if not 0 <= low <= high <= 255:
            raise ValueError("severity_cutoffs must satisfy 0 <= low <= high <= 255")
        return v


class VisregConfig(BaseModel):
    # Capture
    browser_engine: BrowserEngineName = "chromium"
    default_viewport: Viewport = Field(default_factory=Viewport)
    capture: CaptureOptions = Field(default_factory=CaptureOptions)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    attempt_timeout_seconds: float = Field(default=30.0, gt=0)
    max_viewport_width: int = Field(default=7680, gt=0)
    max_viewport_height: int = Field(default=4320, gt=0)
    headless: bool = True
    user_agent: Optional[str] = None

    # Diff
    diff_threshold: float = Field(default=0.2, ge=0.0, le=100.0)  # percent
    diff: DiffOptions = Field(default_factory=DiffOptions)
    max_workers: Optional[int] = Field(default=None, ge=1)

    # Responsive presets
    viewports: list[Viewport] = Field(
        default_factory=lambda: [
            Viewport(width=1920, height=1080, name="desktop"),
            Viewport(width=768, height=1024, name="tablet", is_mobile=True),
            Viewport(width=375, height=812, name="mobile", device_scale_factor=3.0, is_mobile=True),
        ]
    )

    # Output
    output_dir: str = "./visreg-output"

    @classmethod
    def load(cls, path: str | Path) -> "VisregConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
