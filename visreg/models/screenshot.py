"""Capture-side data structures: requests, screenshot artifacts and results."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from visreg.models.config import CaptureOptionsOverride, Viewport
from visreg.models.errors import ErrorInfo


class CaptureRequest(BaseModel):
    url: str
    selector: Optional[str] = None
    viewport: Optional[Viewport] = None
    browser_engine: Optional[str] = None
    options: Optional[CaptureOptionsOverride] = None
    name: str = ""
    tags: list[str] = Field(default_factory=list)
    # Reuse the page already loaded by the caller (animation sampling)
    skip_navigation: bool = False


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int


class ScreenshotMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_agent: str = "Unknown"
    pixel_ratio: float = 1.0
    color_depth: int = 24
    file_size: int = 0
    dimensions: Dimensions
    content_hash: str  # SHA-256 hex digest of the raster bytes


class Screenshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str
    selector: Optional[str] = None
    viewport: Viewport
    browser_engine: str = "chromium"
    timestamp: str  # ISO timestamp
    raster_data: str  # data:image/...;base64,...
    metadata: ScreenshotMetadata
    tags: tuple[str, ...] = ()


class CaptureResult(BaseModel):
    success: bool
    screenshot: Optional[Screenshot] = None
    error: Optional[ErrorInfo] = None
    attempts: int = 0

    @model_validator(mode="after")
    def check_payload(self) -> "CaptureResult":
        if self.success and (self.screenshot is None or self.error is not None):
            raise ValueError("successful CaptureResult needs a screenshot and no error")
        if not self.success and (self.error is None or self.screenshot is not None):
            raise ValueError("failed CaptureResult needs an error and no screenshot")
        return self

    @classmethod
    def ok(cls, screenshot: Screenshot, attempts: int = 1) -> "CaptureResult":
        return cls(success=True, screenshot=screenshot, attempts=attempts)

    @classmethod
    def fail(cls, error: ErrorInfo, attempts: int = 0) -> "CaptureResult":
        return cls(success=False, error=error, attempts=attempts)
