"""Normalized cross-correlation of comparison windows against the base stream."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

import numpy as np
from scipy.signal import correlate

from driftsync.core.sampler import Window
from driftsync.models.measurement import AlignmentMeasurement

_EPS = 1e-12


def _sliding_sums(values: np.ndarray, width: int) -> np.ndarray:
    cumulative = np.concatenate(([0.0], np.cumsum(values)))
    return cumulative[width:] - cumulative[:-width]


def best_offset(segment: np.ndarray, template: np.ndarray) -> tuple[int, float]:
    """Return the index in ``segment`` where ``template`` matches best, and its score.

    The score is the Pearson correlation coefficient of the template with the
    overlapping slice of the segment, clipped to [0, 1].
    """
    n = len(template)
    if n == 0 or len(segment) < n:
        return 0, 0.0

    segment = segment.astype(np.float64, copy=False)
    centered = template.astype(np.float64) - float(np.mean(template))
    template_norm = float(np.sqrt(np.dot(centered, centered)))
    if template_norm < _EPS:
        return 0, 0.0

    numerator = correlate(segment, centered, mode="valid", method="fft")
    sums = _sliding_sums(segment, n)
    squares = _sliding_sums(segment * segment, n)
    variance = np.maximum(squares - sums * sums / n, 0.0)
    denominator = np.sqrt(variance) * template_norm

    scores = np.zeros_like(numerator)
    np.divide(numerator, denominator, out=scores, where=denominator > _EPS)

    index = int(np.argmax(scores))
    return index, float(np.clip(scores[index], 0.0, 1.0))


def correlate_window(
    reference: np.ndarray, window: Window, sample_rate: int
) -> AlignmentMeasurement:
    """Find where ``window`` best matches ``reference`` within its search range."""
    n = len(window.data)
    lo = max(0, window.sync_start)
    # candidate offsets are [lo, sync_end); each needs n samples of reference
    hi = min(len(reference), max(window.sync_end, lo) - 1 + n)

    index, score = best_offset(reference[lo:hi], window.data)
    return AlignmentMeasurement(
        order=window.order,
        start=window.start,
        end=window.end,
        sample_offset=lo + index,
        correlation=score,
        sample_rate=sample_rate,
    )


def correlate_windows(
    reference: np.ndarray,
    windows: Sequence[Window],
    sample_rate: int,
    *,
    threads: int = 1,
    progress: Callable[[float], None] | None = None,
) -> list[AlignmentMeasurement]:
    """Correlate every window on a pool of ``threads`` workers.

    Results come back in window order regardless of completion order.
    ``progress`` receives the completed fraction after each window.
    """
    if threads < 1:
        raise ValueError(f"threads must be at least 1, got {threads}")

    results: list[AlignmentMeasurement | None] = [None] * len(windows)
    if progress:
        progress(0.0)
    if not windows:
        return []

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = {
            executor.submit(correlate_window, reference, window, sample_rate): i
            for i, window in enumerate(windows)
        }
        done = 0
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
                done += 1
                if progress:
                    progress(done / len(windows))
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return results
