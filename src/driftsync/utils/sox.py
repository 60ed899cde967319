"""SoX and FLAC command builders used by the resample/encode pipeline."""

from __future__ import annotations

import shlex
from pathlib import Path

from driftsync.utils.process import run_piped, run_tool


def _fmt(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".") or "0"


def trim_and_speed(
    input_path: Path | str,
    output_path: Path | str,
    *,
    start_seconds: float,
    end_seconds: float,
    rate: float,
    timeout: float | None = None,
) -> None:
    """Trim (or pad) the start, apply the speed correction and cut to ``end_seconds``.

    A positive ``start_seconds`` trims that much from the start; a negative one
    pads the start with silence instead.
    """
    if start_seconds > 0:
        offset = ["trim", _fmt(start_seconds)]
    else:
        offset = ["pad", _fmt(abs(start_seconds))]

    run_tool(
        [
            "sox", str(input_path), str(output_path),
            "rate", "-v",
            *offset,
            "speed", _fmt(rate),
            "trim", "0", _fmt(end_seconds),
        ],
        timeout=timeout,
    )


def extract_channel(
    input_path: Path | str,
    output_path: Path | str,
    channel: int,
    *,
    timeout: float | None = None,
) -> None:
    """Write a single (1-based) channel of ``input_path`` as a mono file."""
    run_tool(
        ["sox", str(input_path), "-c", "1", str(output_path), "remix", str(channel)],
        timeout=timeout,
    )


def normalize(
    input_path: Path | str,
    output_path: Path | str,
    *,
    timeout: float | None = None,
) -> None:
    """Peak-normalize a file to 0 dBFS."""
    run_tool(["sox", "--norm", str(input_path), str(output_path)], timeout=timeout)


def merge_command(
    inputs: list[Path],
    *,
    merge: bool,
    sample_rate: int,
    channels: int,
    bit_depth: int,
) -> list[str]:
    """Build the sox command that writes raw signed PCM to stdout."""
    return [
        "sox",
        *(["--combine", "merge"] if merge else []),
        *[str(p) for p in inputs],
        "-t", "raw",
        "-r", str(sample_rate),
        "-c", str(channels),
        "-e", "signed",
        "-b", str(bit_depth),
        "-",
    ]


def flac_command(
    output_path: Path | str,
    *,
    sample_rate: int,
    channels: int,
    bit_depth: int,
    encode_options: str = "--best",
    threads: int = 1,
) -> list[str]:
    """Build the flac command that encodes raw PCM from stdin."""
    return [
        "flac",
        "-s",
        "--endian=little",
        "--sign=signed",
        f"--bps={bit_depth}",
        f"--channels={channels}",
        f"--sample-rate={sample_rate}",
        *shlex.split(encode_options),
        *(["-j", str(threads)] if threads > 1 else []),
        "-",
        "-f",
        "-o", str(output_path),
    ]


def merge_and_encode(
    inputs: list[Path],
    output_path: Path | str,
    *,
    merge: bool,
    sample_rate: int,
    channels: int,
    bit_depth: int,
    encode_options: str = "--best",
    threads: int = 1,
    timeout: float | None = None,
) -> None:
    """Multiplex ``inputs`` to raw PCM with sox and stream it into flac."""
    run_piped(
        merge_command(
            inputs,
            merge=merge,
            sample_rate=sample_rate,
            channels=channels,
            bit_depth=bit_depth,
        ),
        flac_command(
            output_path,
            sample_rate=sample_rate,
            channels=channels,
            bit_depth=bit_depth,
            encode_options=encode_options,
            threads=threads,
        ),
        timeout=timeout,
    )
