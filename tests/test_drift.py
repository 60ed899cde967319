"""Tests for outlier removal and the drift line fit."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from driftsync.core.drift import (
    InterquartileFilter,
    ModeWindowFilter,
    estimate_drift,
    get_outlier_filter,
    round_tenth,
    simple_linear_regression,
    weighted_linear_regression,
)
from driftsync.errors import DegenerateFitError, InsufficientDataError
from driftsync.models.measurement import AlignmentMeasurement, DriftModel

SAMPLE_RATE = 48000


def measurement(order, difference, correlation=1.0, sample_rate=SAMPLE_RATE):
    """Build a measurement whose difference is ``difference`` to within one sample."""
    start = sample_rate * (600 + 10 * order)
    return AlignmentMeasurement(
        order=order,
        start=start,
        end=start + sample_rate // 8,
        sample_offset=start - round(difference * sample_rate),
        correlation=correlation,
        sample_rate=sample_rate,
    )


def measurements(differences, correlation=1.0):
    return [measurement(i, d, correlation) for i, d in enumerate(differences)]


class TestModeWindowFilter:
    """Test the frequency-mode outlier filter."""

    def test_round_tenth_rounds_half_up(self):
        assert round_tenth(0.25) == pytest.approx(0.3)
        assert round_tenth(-0.25) == pytest.approx(-0.2)
        assert round_tenth(1.04) == pytest.approx(1.0)

    def test_removes_far_outlier(self):
        data = measurements([2.0, 2.05, 1.98, 2.1, 2.0, 2.02, 1.95, 50.0, 2.03, 1.99])

        kept = ModeWindowFilter().filter(data, 0.5)

        assert [m.order for m in kept] == [0, 1, 2, 3, 4, 5, 6, 8, 9]

    def test_tie_goes_to_first_seen_value(self):
        data = measurements([1.0, 3.0, 3.0, 1.0])

        kept = ModeWindowFilter().filter(data, 0.2)

        assert [m.order for m in kept] == [0, 3]

    def test_bounds_use_unrounded_difference(self):
        data = measurements([2.0, 2.0, 2.0, 2.49, 2.52, 1.51, 1.47])

        kept = ModeWindowFilter().filter(data, 0.5)

        assert [m.order for m in kept] == [0, 1, 2, 3, 5]

    def test_empty_input(self):
        assert ModeWindowFilter().filter([], 0.5) == []


class TestInterquartileFilter:
    """Test the IQR alternative behind the same contract."""

    def test_removes_far_outlier(self):
        data = measurements([2.0, 2.05, 1.98, 2.1, 2.0, 2.02, 1.95, 50.0, 2.03, 1.99])

        kept = InterquartileFilter().filter(data, 0.5)

        assert 7 not in [m.order for m in kept]
        assert len(kept) == 9

    def test_tight_cluster_is_not_overtrimmed(self):
        data = measurements([1.0] * 8 + [1.2])

        kept = InterquartileFilter().filter(data, 0.5)

        assert len(kept) == 9

    def test_selected_by_name(self):
        assert isinstance(get_outlier_filter("iqr"), InterquartileFilter)
        assert isinstance(get_outlier_filter("mode"), ModeWindowFilter)

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown outlier filter"):
            get_outlier_filter("median")


class TestRegression:
    """Test the closed-form least-squares fits."""

    def test_simple_exact_line(self):
        points = [(x, 0.5 * x - 2.0) for x in range(6)]

        slope, intercept = simple_linear_regression(points)

        assert slope == pytest.approx(0.5)
        assert intercept == pytest.approx(-2.0)

    def test_weighted_matches_simple_with_equal_weights(self):
        points = [(0, 1.0), (1, 1.3), (2, 0.9), (4, 1.6), (7, 2.2)]

        simple = simple_linear_regression(points)
        weighted = weighted_linear_regression([(x, y, 0.7) for x, y in points])

        assert weighted == pytest.approx(simple)

    def test_weighted_ignores_zero_weight_point(self):
        points = [(0, 1.0, 1.0), (1, 2.0, 1.0), (2, 3.0, 1.0), (3, 100.0, 0.0)]

        slope, intercept = weighted_linear_regression(points)

        assert slope == pytest.approx(1.0)
        assert intercept == pytest.approx(1.0)

    def test_single_point_is_insufficient(self):
        with pytest.raises(InsufficientDataError):
            simple_linear_regression([(0, 1.0)])
        with pytest.raises(InsufficientDataError):
            weighted_linear_regression([(0, 1.0, 1.0)])

    def test_identical_x_is_degenerate(self):
        with pytest.raises(DegenerateFitError):
            simple_linear_regression([(3, 1.0), (3, 2.0)])

    def test_zero_weights_are_degenerate(self):
        with pytest.raises(DegenerateFitError):
            weighted_linear_regression([(0, 1.0, 0.0), (1, 2.0, 0.0)])


class TestEstimateDrift:
    """Test the full estimate: filter, then fit."""

    def test_reference_scenario(self):
        data = measurements([2.0, 2.05, 1.98, 2.1, 2.0, 2.02, 1.95, 50.0, 2.03, 1.99])

        model = estimate_drift(data, 0.5)

        assert model.outliers == 1
        assert model.inliers == 9
        assert model.slope == pytest.approx(0.0, abs=0.01)
        assert model.intercept == pytest.approx(2.0, abs=0.05)

    def test_constant_offset_with_outliers(self):
        data = measurements([3.3] * 8 + [40.0, -20.0, 3.3, 3.3])

        model = estimate_drift(data, 0.5)

        assert model.slope == pytest.approx(0.0, abs=1e-4)
        assert model.intercept == pytest.approx(3.3, abs=1e-4)
        assert model.outliers == 2

    @pytest.mark.parametrize("tolerance", [0.5, 1.0, 5.0])
    @pytest.mark.parametrize("outlier_filter", ["mode", "iqr"])
    def test_exact_line_with_outliers(self, tolerance, outlier_filter):
        differences = [0.02 * x - 1.5 for x in range(20)]
        differences[4] = 90.0
        differences[13] = -70.0

        model = estimate_drift(measurements(differences), tolerance, outlier_filter=outlier_filter)

        assert model.slope == pytest.approx(0.02, abs=1e-4)
        assert model.intercept == pytest.approx(-1.5, abs=1e-3)

    def test_weighted_fit_matches_simple_for_equal_confidence(self):
        data = measurements([0.01 * x + 0.4 for x in range(12)], correlation=0.8)

        simple = estimate_drift(data, 0.5)
        weighted = estimate_drift(data, 0.5, weighted=True)

        assert weighted.slope == pytest.approx(simple.slope)
        assert weighted.intercept == pytest.approx(simple.intercept)

    def test_zero_confidence_windows_are_dropped(self):
        data = measurements([0.02 * x + 1.0 for x in range(10)])
        # out-of-range window: offset pinned to the clamped start, score 0
        data.append(measurement(10, 1.0, correlation=0.0))

        model = estimate_drift(data, 0.5)

        assert model.slope == pytest.approx(0.02, abs=1e-4)
        assert model.intercept == pytest.approx(1.0, abs=1e-3)
        assert model.inliers == 10
        assert model.outliers == 1

    def test_only_zero_confidence_is_insufficient(self):
        data = measurements([1.0] * 5, correlation=0.0)

        with pytest.raises(InsufficientDataError):
            estimate_drift(data, 0.5)

    def test_too_few_survivors(self):
        data = measurements([1.0, 5.0, 9.0])

        with pytest.raises(InsufficientDataError, match="survived"):
            estimate_drift(data, 0.5)

    def test_empty_input(self):
        with pytest.raises(InsufficientDataError):
            estimate_drift([], 0.5)

    def test_same_order_is_degenerate(self):
        data = [measurement(4, 1.0), measurement(4, 1.1)]

        with pytest.raises(DegenerateFitError):
            estimate_drift(data, 0.5)

    @settings(max_examples=50, deadline=None)
    @given(
        slope=st.floats(min_value=-0.01, max_value=0.01),
        intercept=st.floats(min_value=-20.0, max_value=20.0),
        count=st.integers(min_value=3, max_value=40),
    )
    def test_recovers_any_gentle_line(self, slope, intercept, count):
        differences = [slope * x + intercept for x in range(count)]
        data = measurements(differences) + [measurement(count, intercept + 100.0)]

        model = estimate_drift(data, 0.5)

        assert model.slope == pytest.approx(slope, abs=1e-4)
        assert model.intercept == pytest.approx(intercept, abs=1e-3)


class TestDriftModel:
    def test_rate_and_start_offset(self):
        model = DriftModel(slope=0.1, intercept=-2.5)

        assert model.start_offset == -2.5
        assert model.rate(10) == pytest.approx(1.01)
