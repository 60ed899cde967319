"""FFprobe wrapper for audio stream metadata."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from driftsync.errors import DecodeFailure, ToolError
from driftsync.utils.process import run_tool

DEFAULT_BIT_DEPTH = 24


@dataclass
class AudioInfo:
    """Metadata of the first audio stream in a file."""

    path: str
    duration_seconds: float
    sample_rate: int
    channels: int
    codec: str
    bit_depth: int | None

    @property
    def output_bit_depth(self) -> int:
        # ffprobe reports no depth for some codecs
        return self.bit_depth or DEFAULT_BIT_DEPTH


def probe_audio(path: Path | str) -> AudioInfo:
    """Probe a file with FFprobe and return metadata for its first audio stream."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    cmd = [
        "ffprobe",
        "-v", "error",
        "-select_streams", "a",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    try:
        result = run_tool(cmd, capture_stdout=True)
    except ToolError as e:
        raise DecodeFailure(e.cmd, e.returncode, e.stderr) from e

    data = json.loads(result.stdout or "{}")
    streams = data.get("streams") or []
    if not streams:
        raise DecodeFailure(cmd, 0, f"{path} does not have any audio streams")

    # Only the first audio stream is used.
    audio_stream = streams[0]
    fmt = data.get("format", {})

    bit_depth = None
    for key in ("bits_per_raw_sample", "bits_per_sample"):
        val = audio_stream.get(key)
        if val and str(val).isdigit() and int(val) > 0:
            bit_depth = int(val)
            break

    return AudioInfo(
        path=str(path),
        duration_seconds=float(fmt.get("duration", audio_stream.get("duration", 0)) or 0),
        sample_rate=int(audio_stream.get("sample_rate", 0)),
        channels=int(audio_stream.get("channels", 0)),
        codec=audio_stream.get("codec_name", ""),
        bit_depth=bit_depth,
    )
