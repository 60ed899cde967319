"""Configuration models for the sync and output stages."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from driftsync.utils.io import read_yaml


def _cpu_count() -> int:
    return os.cpu_count() or 1


class NormalizeMode(str, Enum):
    """How the corrected audio is amplitude-normalized before encoding."""

    NONE = "none"
    COMBINED = "combined"
    INDEPENDENT = "independent"


class SyncConfig(BaseModel):
    """Configuration for measuring the drift between the two recordings."""

    threads: int = Field(default_factory=_cpu_count, ge=1)
    rectify: bool = True
    rate_tolerance: float = Field(default=0.5, ge=0.0)
    sample_length: float = Field(default=0.125, gt=0.0)  # seconds per window
    sample_gap: float = Field(default=10.0, gt=0.0)  # seconds skipped between windows
    start_range: float = Field(default=180.0, ge=0.0)  # look-back
    end_range: float = Field(default=60.0, ge=0.0)  # look-ahead
    outlier_filter: Literal["mode", "iqr"] = "mode"
    fit: Literal["simple", "weighted"] = "simple"


class OutputConfig(BaseModel):
    """Configuration for the corrected output file."""

    normalize: NormalizeMode = NormalizeMode.NONE
    encode_options: str = "--best"
    flac_threads: int = Field(default=1, ge=1)
    rename_string: str = ".synced"
    delete_comparison: bool = False
    timeout_seconds: float | None = Field(default=None, gt=0.0)


class AppConfig(BaseModel):
    """All driftsync configuration."""

    sync: SyncConfig = Field(default_factory=SyncConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def load_config(path: Path | str | None = None, overrides: dict | None = None) -> AppConfig:
    """Load configuration from an optional YAML file, then apply overrides.

    ``overrides`` has the same shape as the file (``{"sync": {...}, "output": {...}}``);
    keys whose value is ``None`` are ignored.
    """
    data: dict = read_yaml(path) if path else {}
    for section, values in (overrides or {}).items():
        merged = dict(data.get(section) or {})
        merged.update({k: v for k, v in values.items() if v is not None})
        data[section] = merged
    return AppConfig.model_validate(data)


class EncodeSettings(BaseModel):
    """Target format and encoder tuning for the corrected output."""

    sample_rate: int = Field(gt=0)
    bit_depth: int = Field(default=24, gt=0)
    channels: int = Field(default=2, ge=1)
    normalize: NormalizeMode = NormalizeMode.NONE
    encode_options: str = "--best"
    flac_threads: int = Field(default=1, ge=1)
