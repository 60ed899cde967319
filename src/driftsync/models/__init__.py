"""Pydantic data models for driftsync."""

from driftsync.models.config import (
    AppConfig,
    EncodeSettings,
    NormalizeMode,
    OutputConfig,
    SyncConfig,
)
from driftsync.models.measurement import AlignmentMeasurement, Correction, DriftModel
from driftsync.models.report import SyncReport

__all__ = [
    "AppConfig",
    "EncodeSettings",
    "NormalizeMode",
    "OutputConfig",
    "SyncConfig",
    "AlignmentMeasurement",
    "Correction",
    "DriftModel",
    "SyncReport",
]
