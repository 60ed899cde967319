"""Alignment measurement and drift model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AlignmentMeasurement(BaseModel):
    """Result of correlating one comparison window against the base stream."""

    model_config = ConfigDict(frozen=True)

    order: int
    start: int
    end: int
    sample_offset: int
    correlation: float
    sample_rate: int

    @property
    def difference(self) -> float:
        """Seconds between the window's nominal position and where it matched."""
        return (self.start - self.sample_offset) / self.sample_rate


class DriftModel(BaseModel):
    """Line fitted over (order, difference) pairs."""

    model_config = ConfigDict(frozen=True)

    slope: float
    intercept: float
    inliers: int = 0
    outliers: int = 0

    @property
    def start_offset(self) -> float:
        return self.intercept

    def rate(self, interval_seconds: float) -> float:
        """Multiplicative playback-rate correction."""
        return 1.0 + self.slope / interval_seconds


class Correction(BaseModel):
    """Trim offset, output length and speed applied to the comparison file."""

    model_config = ConfigDict(frozen=True)

    start_seconds: float
    end_seconds: float
    rate: float
