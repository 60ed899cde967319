"""Sync report written after a run."""

from __future__ import annotations

from pydantic import BaseModel, Field

from driftsync.models.measurement import AlignmentMeasurement, Correction, DriftModel


class SyncReport(BaseModel):
    """Everything measured and produced by one sync run."""

    version: str = "1.0"
    base_file: str
    comparison_file: str
    output_file: str | None = None
    sample_rate: int
    windows: int = 0
    drift: DriftModel
    correction: Correction
    measurements: list[AlignmentMeasurement] = Field(default_factory=list)
    dry_run: bool = False
    comparison_deleted: bool = False
