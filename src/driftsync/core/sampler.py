"""Sparse window sampling of a decoded comparison stream.

The comparison recording is not correlated in full. Short windows are taken at
regular intervals, each with the range of base-stream offsets the correlator is
allowed to search. Decoded audio arrives as a sequence of blocks of arbitrary
size, so windows are filled by a streaming merge: a read cursor walks the
blocks and a write cursor fills the current window buffer, copying only the
overlap between the two.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator

import numpy as np


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Window:
    """A slice ``[start, end)`` of the comparison stream and its search range."""

    order: int
    start: int
    end: int
    sync_start: int
    sync_end: int
    data: np.ndarray = field(repr=False, compare=False)

    def __len__(self) -> int:
        return self.end - self.start


def search_range(
    order: int,
    interval_seconds: float,
    look_back_seconds: float,
    look_ahead_seconds: float,
    sample_rate: int,
) -> tuple[int, int]:
    """Base-stream sample range to search for the window at ``order``.

    Bounds are rounded to whole seconds before scaling by the sample rate and
    may fall outside the base stream; the correlator clamps them.
    """
    sync_start = round_half_up(order * interval_seconds - look_back_seconds) * sample_rate
    sync_end = round_half_up(order * interval_seconds + look_ahead_seconds) * sample_rate
    return sync_start, sync_end


def sample_windows(
    chunks: Iterable[np.ndarray],
    total_samples: int,
    window_seconds: float,
    interval_seconds: float,
    look_back_seconds: float,
    look_ahead_seconds: float,
    sample_rate: int,
) -> Iterator[Window]:
    """Yield windows of ``window_seconds`` separated by ``interval_seconds`` gaps.

    The first window starts ``interval_seconds`` into the stream and each
    following one starts ``interval_seconds`` after the previous window's end.
    The last window is clipped to ``total_samples``; sampling stops once a
    window would start at or beyond it. ``order`` is the 0-based window index
    and drives both the search range and the regression x-coordinate.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if window_seconds <= 0:
        raise ValueError(f"window_seconds must be positive, got {window_seconds}")
    if interval_seconds < 0:
        raise ValueError(f"interval_seconds must be non-negative, got {interval_seconds}")
    if look_back_seconds < 0 or look_ahead_seconds < 0:
        raise ValueError("look-back and look-ahead must be non-negative")

    window_length = round_half_up(window_seconds * sample_rate)
    gap = round_half_up(interval_seconds * sample_rate)
    if window_length <= 0:
        raise ValueError(f"window_seconds {window_seconds} is shorter than one sample")

    order = 0
    start = gap
    end = min(start + window_length, total_samples)
    if start >= total_samples:
        return
    buffer = np.empty(end - start, dtype=np.float32)
    written = 0

    position = 0  # stream index of the current block's first sample
    for chunk in chunks:
        chunk_end = position + len(chunk)

        while start < chunk_end:
            lo = max(start + written, position)
            hi = min(end, chunk_end)
            if hi > lo:
                buffer[lo - start:hi - start] = chunk[lo - position:hi - position]
                written = hi - start
            if start + written < end:
                # window continues in the next block
                break

            sync_start, sync_end = search_range(
                order, interval_seconds, look_back_seconds, look_ahead_seconds, sample_rate
            )
            yield Window(order, start, end, sync_start, sync_end, buffer)

            order += 1
            start = end + gap
            end = min(start + window_length, total_samples)
            if start >= total_samples:
                return
            buffer = np.empty(end - start, dtype=np.float32)
            written = 0

        position = chunk_end
