"""Shared fixtures for driftsync tests."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from driftsync.pipeline.job import PipelineJob


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def job(tmp_path: Path) -> PipelineJob:
    source = tmp_path / "comparison.flac"
    source.write_bytes(b"source")
    work = tmp_path / "work"
    work.mkdir()
    return PipelineJob(source=source, target=tmp_path / "comparison.synced.flac", temp_dir=work)


class FakeSox:
    """Records calls in place of the sox/flac wrappers and writes placeholder files."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail_channel: int | None = None
        self.fail_encode = False
        self.before_normalize = None

    def trim_and_speed(self, input_path, output_path, *, start_seconds, end_seconds, rate, timeout=None):
        self.calls.append(("trim", start_seconds, end_seconds, rate))
        Path(output_path).write_bytes(b"trimmed")

    def extract_channel(self, input_path, output_path, channel, *, timeout=None):
        self.calls.append(("extract", channel))
        if channel == self.fail_channel:
            from driftsync.errors import ToolError

            raise ToolError(["sox", str(input_path), "remix", str(channel)], 2, "boom")
        Path(output_path).write_bytes(b"channel")

    def normalize(self, input_path, output_path, *, timeout=None):
        if self.before_normalize:
            self.before_normalize()
        self.calls.append(("normalize", Path(input_path).name))
        Path(output_path).write_bytes(b"normalized")

    def merge_and_encode(self, inputs, output_path, *, merge, sample_rate, channels, bit_depth,
                         encode_options="--best", threads=1, timeout=None):
        self.calls.append(("encode", [Path(p).name for p in inputs], merge, channels))
        Path(output_path).write_bytes(b"flac")
        if self.fail_encode:
            from driftsync.errors import ToolError

            raise ToolError(["flac", "-o", str(output_path)], 1, "encode failed")

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_sox(monkeypatch) -> FakeSox:
    from driftsync.utils import sox

    fake = FakeSox()
    for name in ("trim_and_speed", "extract_channel", "normalize", "merge_and_encode"):
        monkeypatch.setattr(sox, name, getattr(fake, name))
    return fake
