"""FFmpeg decoding to mono float32 PCM."""

from __future__ import annotations

import subprocess
from pathlib import Path

import numpy as np

from driftsync.errors import DecodeFailure
from driftsync.utils.process import drain, forward_stderr

BLOCK_BYTES = 1 << 20
_FLOAT_BYTES = np.dtype(np.float32).itemsize


def decode_command(input_path: Path | str, sample_rate: int) -> list[str]:
    """Build the ffmpeg command that writes the first audio stream as mono f32le."""
    return [
        "ffmpeg",
        "-v", "error",
        "-i", str(input_path),
        "-map", "0:a:0",
        "-ac", "1",
        "-ar", str(sample_rate),
        "-f", "f32le",
        "-acodec", "pcm_f32le",
        "-",
    ]


def decode_blocks(
    input_path: Path | str,
    sample_rate: int,
    *,
    rectify: bool = False,
    block_bytes: int = BLOCK_BYTES,
) -> tuple[list[np.ndarray], int]:
    """Decode a file into a list of float32 blocks.

    Returns the blocks and the total number of samples. With ``rectify`` the
    absolute value of every sample is taken, which makes phase-inverted
    recordings correlate.
    """
    cmd = decode_command(input_path, sample_rate)
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except FileNotFoundError as e:
        raise DecodeFailure(cmd, 127, "ffmpeg: command not found") from e

    blocks: list[np.ndarray] = []
    total = 0
    pending = b""
    with proc:
        collect_stderr = drain(proc.stderr)
        while True:
            data = proc.stdout.read(block_bytes)
            if not data:
                break
            data = pending + data
            usable = len(data) - len(data) % _FLOAT_BYTES
            pending = data[usable:]
            if not usable:
                continue
            block = np.frombuffer(data[:usable], dtype="<f4").astype(np.float32)
            if rectify:
                np.abs(block, out=block)
            blocks.append(block)
            total += len(block)
        stderr = collect_stderr()

    forward_stderr(stderr)
    if proc.returncode != 0:
        raise DecodeFailure(cmd, proc.returncode, stderr.decode("utf-8", errors="replace"))
    return blocks, total


def concatenate(blocks: list[np.ndarray], total: int) -> np.ndarray:
    """Join decoded blocks into one contiguous stream."""
    data = np.empty(total, dtype=np.float32)
    position = 0
    for block in blocks:
        data[position:position + len(block)] = block
        position += len(block)
    return data


def decode_audio(input_path: Path | str, sample_rate: int, *, rectify: bool = False) -> np.ndarray:
    """Decode a whole file into a single mono float32 array."""
    blocks, total = decode_blocks(input_path, sample_rate, rectify=rectify)
    return concatenate(blocks, total)
