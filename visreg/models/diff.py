"""Diff-side data structures produced by the diff engine."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from visreg.models.errors import ErrorInfo

DiffStatus = Literal["passed", "failed", "pending", "error", "warning"]
Severity = Literal["low", "medium", "high"]
RegionType = Literal["addition", "deletion", "modification"]


class DiffRegion(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int
    height: int
    severity: Severity
    type: RegionType
    pixel_count: int = 0
    mean_delta: float = 0.0


class DiffMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_pixels: int
    changed_pixels: int
    percentage_changed: float
    mean_color_delta: float
    max_color_delta: float
    regions: int
    ssim: float = 1.0


class SizeMismatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    baseline_width: int
    baseline_height: int
    comparison_width: int
    comparison_height: int


class VisualDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    baseline_id: str
    comparison_id: str
    timestamp: str
    status: DiffStatus
    differences: tuple[DiffRegion, ...] = ()
    metrics: DiffMetrics
    threshold: float
    size_mismatch: Optional[SizeMismatch] = None


class DiffResult(BaseModel):
    success: bool
    diff: Optional[VisualDiff] = None
    diff_image_url: Optional[str] = None
    error: Optional[ErrorInfo] = None

    @model_validator(mode="after")
    def check_payload(self) -> "DiffResult":
        if self.success and (self.diff is None or self.error is not None):
            raise ValueError("successful DiffResult needs a diff and no error")
        if not self.success and (self.error is None or self.diff is not None):
            raise ValueError("failed DiffResult needs an error and no diff")
        return self

    @property
    def status(self) -> DiffStatus:
        return self.diff.status if self.diff else "error"

