"""Robust drift estimation from per-window alignment measurements.

Correct alignments cluster tightly around the true offset trend while
mismatched windows scatter, so outliers are removed first and a straight line
is then fitted through ``(order, difference)``. The intercept is the constant
start offset in seconds; the slope is the offset gained per window.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Protocol, Sequence

import numpy as np

from driftsync.errors import DegenerateFitError, InsufficientDataError
from driftsync.models.measurement import AlignmentMeasurement, DriftModel


def round_tenth(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


class OutlierFilter(Protocol):
    """Strategy that drops measurements not belonging to the main cluster."""

    name: str

    def filter(
        self, measurements: Sequence[AlignmentMeasurement], tolerance: float
    ) -> list[AlignmentMeasurement]: ...


class ModeWindowFilter:
    """Keep measurements within ``tolerance`` of the most frequent rounded difference."""

    name = "mode"

    def filter(
        self, measurements: Sequence[AlignmentMeasurement], tolerance: float
    ) -> list[AlignmentMeasurement]:
        if not measurements:
            return []
        counts = Counter(round_tenth(m.difference) for m in measurements)
        # Counter preserves insertion order, so ties go to the first value seen.
        mode = max(counts, key=counts.__getitem__)
        lower, upper = mode - tolerance, mode + tolerance
        return [m for m in measurements if lower <= m.difference <= upper]


class InterquartileFilter:
    """Keep measurements inside Tukey fences around the interquartile range.

    The fences are never narrower than ``tolerance`` either side of the median,
    otherwise a tight cluster with a zero IQR would reject good points.
    """

    name = "iqr"

    def __init__(self, k: float = 1.5):
        self.k = k

    def filter(
        self, measurements: Sequence[AlignmentMeasurement], tolerance: float
    ) -> list[AlignmentMeasurement]:
        if not measurements:
            return []
        diffs = np.array([m.difference for m in measurements], dtype=np.float64)
        q1, median, q3 = np.percentile(diffs, [25, 50, 75])
        iqr = q3 - q1
        lower = min(q1 - self.k * iqr, median - tolerance)
        upper = max(q3 + self.k * iqr, median + tolerance)
        return [m for m in measurements if lower <= m.difference <= upper]


OUTLIER_FILTERS: dict[str, type] = {
    ModeWindowFilter.name: ModeWindowFilter,
    InterquartileFilter.name: InterquartileFilter,
}


def get_outlier_filter(name: str) -> OutlierFilter:
    try:
        return OUTLIER_FILTERS[name]()
    except KeyError:
        raise ValueError(f"Unknown outlier filter: {name}") from None


def simple_linear_regression(points: Sequence[tuple[float, float]]) -> tuple[float, float]:
    """Ordinary least squares over ``(x, y)`` pairs; returns ``(slope, intercept)``."""
    n = len(points)
    if n < 2:
        raise InsufficientDataError(f"Need at least 2 points to fit a line, got {n}")

    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for x, y in points:
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_x2 += x * x

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        raise DegenerateFitError("All points share the same x value")

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def weighted_linear_regression(
    points: Sequence[tuple[float, float, float]],
) -> tuple[float, float]:
    """Weighted least squares over ``(x, y, weight)``; returns ``(slope, intercept)``."""
    if len(points) < 2:
        raise InsufficientDataError(f"Need at least 2 points to fit a line, got {len(points)}")

    sum_w = sum_wx = sum_wy = sum_wxy = sum_wxx = 0.0
    for x, y, w in points:
        sum_w += w
        sum_wx += w * x
        sum_wy += w * y
        sum_wxy += w * x * y
        sum_wxx += w * x * x

    denominator = sum_w * sum_wxx - sum_wx * sum_wx
    if sum_w <= 0 or denominator == 0:
        raise DegenerateFitError("Weighted points do not determine a line")

    slope = (sum_w * sum_wxy - sum_wx * sum_wy) / denominator
    intercept = (sum_wy * sum_wxx - sum_wx * sum_wxy) / denominator
    return slope, intercept


def estimate_drift(
    measurements: Sequence[AlignmentMeasurement],
    rate_tolerance: float,
    *,
    outlier_filter: str | OutlierFilter = "mode",
    weighted: bool = False,
) -> DriftModel:
    """Remove outliers and fit the drift line.

    Measurements with zero confidence (no usable search range) are counted
    as outliers before the filter runs. Raises InsufficientDataError if fewer
    than two measurements survive and DegenerateFitError if the survivors
    cannot determine a slope.
    """
    if isinstance(outlier_filter, str):
        outlier_filter = get_outlier_filter(outlier_filter)

    scored = [m for m in measurements if m.correlation > 0]
    kept = outlier_filter.filter(scored, rate_tolerance)
    if len(kept) < 2:
        raise InsufficientDataError(
            f"Only {len(kept)} of {len(measurements)} measurements survived "
            f"outlier removal ({outlier_filter.name}, tolerance {rate_tolerance}s)"
        )

    if weighted:
        slope, intercept = weighted_linear_regression(
            [(m.order, m.difference, m.correlation) for m in kept]
        )
    else:
        slope, intercept = simple_linear_regression([(m.order, m.difference) for m in kept])

    return DriftModel(
        slope=slope,
        intercept=intercept,
        inliers=len(kept),
        outliers=len(measurements) - len(kept),
    )
