"""Tests for the time series algebra."""

import numpy as np
import pandas as pd
import pytest

from stratgraph.exceptions import DivisionByZeroError, TimeSeriesError
from stratgraph.timeseries import EPOCH, TimeSeries, align
from stratgraph.timeseries.join import intersect_positions


def ts(dates: list[str], values: list[float]) -> TimeSeries:
    return TimeSeries(pd.DatetimeIndex(dates), values)


class TestConstruction:
    """Tests for TimeSeries construction and accessors."""

    def test_from_values_daily_index(self) -> None:
        """Test from_values builds a daily index starting at the epoch."""
        series = TimeSeries.from_values([1.0, 2.0, 3.0])

        assert len(series) == 3
        assert series.index[0] == EPOCH
        assert series.index[-1] == EPOCH + pd.Timedelta(days=2)

    def test_length_mismatch_rejected(self) -> None:
        """Test index and values must have the same length."""
        with pytest.raises(TimeSeriesError):
            TimeSeries(pd.date_range("2020-01-01", periods=3), [1.0, 2.0])

    def test_unsorted_index_rejected(self) -> None:
        """Test index must be strictly increasing."""
        with pytest.raises(TimeSeriesError):
            ts(["2020-01-02", "2020-01-01"], [1.0, 2.0])

    def test_duplicate_index_rejected(self) -> None:
        """Test duplicate timestamps are rejected."""
        with pytest.raises(TimeSeriesError):
            ts(["2020-01-01", "2020-01-01"], [1.0, 2.0])

    def test_values_are_read_only(self) -> None:
        """Test the values array cannot be mutated in place."""
        series = TimeSeries.from_values([1.0, 2.0])

        with pytest.raises(ValueError):
            series.values[0] = 5.0

    def test_pandas_round_trip(self) -> None:
        """Test conversion to and from a pandas Series."""
        series = TimeSeries.from_values([1.5, 2.5, 3.5])

        assert TimeSeries.from_series(series.to_series()) == series

    def test_get_and_last(self) -> None:
        """Test point lookup and latest value."""
        series = ts(["2020-01-01", "2020-01-03"], [1.0, 3.0])

        assert series.get("2020-01-03") == 3.0
        assert series.get("2020-01-02") is None
        assert series.last() == 3.0
        assert series.last_timestamp() == pd.Timestamp("2020-01-03")

    def test_last_on_empty_raises(self) -> None:
        """Test last() on an empty series raises."""
        with pytest.raises(TimeSeriesError):
            TimeSeries.empty().last()


class TestAlign:
    """Tests for align and intersect_positions."""

    def test_intersection(self) -> None:
        """Test only shared timestamps survive, values kept per side."""
        lhs = ts(["2020-01-01", "2020-01-02", "2020-01-04", "2020-01-05"], [1, 2, 4, 5])
        rhs = ts(["2020-01-02", "2020-01-03", "2020-01-05", "2020-01-06"], [20, 30, 50, 60])

        left, right = align(lhs, rhs)

        expected = pd.DatetimeIndex(["2020-01-02", "2020-01-05"])
        assert left.index.equals(expected)
        assert right.index.equals(expected)
        np.testing.assert_array_equal(left.values, [2.0, 5.0])
        np.testing.assert_array_equal(right.values, [20.0, 50.0])

    def test_symmetry(self) -> None:
        """Test align(a, b) is align(b, a) with sides swapped."""
        a = TimeSeries.from_values(np.arange(10.0))
        b = TimeSeries.from_values(np.arange(5.0), start="2010-01-04")

        a1, b1 = align(a, b)
        b2, a2 = align(b, a)

        assert a1 == a2
        assert b1 == b2

    def test_disjoint(self) -> None:
        """Test disjoint indices produce empty series."""
        a = ts(["2020-01-01"], [1.0])
        b = ts(["2020-01-02"], [2.0])

        left, right = align(a, b)

        assert left.is_empty()
        assert right.is_empty()

    def test_positions(self) -> None:
        """Test positions point at equal timestamps."""
        lhs = pd.date_range("2020-01-01", periods=6, freq="D")
        rhs = pd.date_range("2020-01-01", periods=3, freq="2D")

        lpos, rpos = intersect_positions(lhs, rhs)

        np.testing.assert_array_equal(lpos, [0, 2, 4])
        np.testing.assert_array_equal(rpos, [0, 1, 2])

    def test_mixed_resolutions(self) -> None:
        """Test indices stored in s and ns units still intersect."""
        seconds = TimeSeries(
            pd.DatetimeIndex(["2020-01-01", "2020-01-02"]).as_unit("s"), [1.0, 2.0]
        )
        nanos = TimeSeries(
            pd.DatetimeIndex(["2020-01-01", "2020-01-02", "2020-01-03"]).as_unit("ns"),
            [10.0, 20.0, 30.0],
        )

        left, right = align(seconds, nanos)

        assert len(left) == 2
        assert left.index.equals(nanos.index[:2])
        assert seconds.ts_add(nanos).values.tolist() == [11.0, 22.0]

    def test_positions_mixed_resolutions(self) -> None:
        """Test raw indices of different units are compared by instant."""
        lhs = pd.date_range("2020-01-01", periods=3, freq="D").as_unit("us")
        rhs = pd.date_range("2020-01-02", periods=3, freq="D").as_unit("ns")

        lpos, rpos = intersect_positions(lhs, rhs)

        np.testing.assert_array_equal(lpos, [1, 2])
        np.testing.assert_array_equal(rpos, [0, 1])

    def test_index_stored_in_nanoseconds(self) -> None:
        """Test construction normalises the index resolution."""
        series = TimeSeries(pd.DatetimeIndex(["2020-01-01"]).as_unit("ms"), [1.0])

        assert series.index.dtype == np.dtype("datetime64[ns]")
        assert TimeSeries.empty().index.dtype == np.dtype("datetime64[ns]")


class TestArithmetic:
    """Tests for scalar and series arithmetic."""

    def test_scalar_ops(self) -> None:
        """Test scalar add/sub/mul/div keep the index."""
        series = TimeSeries.from_values([2.0, 4.0])

        np.testing.assert_array_equal(series.add(1).values, [3.0, 5.0])
        np.testing.assert_array_equal(series.sub(1).values, [1.0, 3.0])
        np.testing.assert_array_equal(series.mul(2).values, [4.0, 8.0])
        np.testing.assert_array_equal(series.div(2).values, [1.0, 2.0])
        assert series.mul(2).index.equals(series.index)

    def test_scalar_division_by_zero(self) -> None:
        """Test dividing by a zero scalar raises."""
        with pytest.raises(DivisionByZeroError):
            TimeSeries.from_values([1.0]).div(0)

    def test_series_ops_align_first(self) -> None:
        """Test series ops apply on the intersection only."""
        a = ts(["2020-01-01", "2020-01-02", "2020-01-03"], [1.0, 2.0, 3.0])
        b = ts(["2020-01-02", "2020-01-03", "2020-01-04"], [10.0, 20.0, 30.0])

        result = a.ts_add(b)

        assert result.index.equals(pd.DatetimeIndex(["2020-01-02", "2020-01-03"]))
        np.testing.assert_array_equal(result.values, [12.0, 23.0])
        np.testing.assert_array_equal(b.ts_sub(a).values, [8.0, 17.0])
        np.testing.assert_array_equal(a.ts_mul(b).values, [20.0, 60.0])
        np.testing.assert_array_equal(b.ts_div(a).values, [5.0, 20.0 / 3.0])

    def test_series_division_by_zero(self) -> None:
        """Test a zero in the aligned divisor raises."""
        a = TimeSeries.from_values([1.0, 2.0])
        b = TimeSeries.from_values([1.0, 0.0])

        with pytest.raises(DivisionByZeroError):
            a.ts_div(b)

    def test_zero_outside_intersection_is_ignored(self) -> None:
        """Test zeros that do not survive alignment are harmless."""
        a = ts(["2020-01-02"], [4.0])
        b = ts(["2020-01-01", "2020-01-02"], [0.0, 2.0])

        assert a.ts_div(b).values.tolist() == [2.0]

    def test_commutative_and_negated_sub(self) -> None:
        """Test ts_add commutes and ts_sub is adding the negation."""
        a = ts(["2020-01-01", "2020-01-02", "2020-01-03"], [1.5, -2.0, 3.25])
        b = ts(["2020-01-02", "2020-01-03"], [4.0, 0.5])

        assert a.ts_add(b) == b.ts_add(a)
        assert a.ts_sub(b).allclose(a.ts_add(b.mul(-1)))

    @pytest.mark.parametrize("k", [3.0, -0.7, 1e-3])
    def test_scalar_round_trip(self, k: float) -> None:
        """Test add/sub and mul/div undo each other."""
        a = TimeSeries.from_values([0.1, 2.5, -7.25, 1e6])

        assert a.add(k).sub(k).allclose(a, rtol=1e-9, atol=1e-9)
        assert a.mul(k).div(k).allclose(a)

    def test_inputs_unchanged(self) -> None:
        """Test operations return new series."""
        a = TimeSeries.from_values([1.0, 2.0])
        before = a.values.copy()

        a.add(5).ts_mul(a)

        np.testing.assert_array_equal(a.values, before)


class TestTransforms:
    """Tests for sma, zero_negatives and relative_change."""

    def test_sma_length_and_index(self) -> None:
        """Test SMA has len - w + 1 points stamped at window ends."""
        series = TimeSeries.from_values([1.0, 2.0, 3.0, 4.0, 5.0])

        result = series.sma(3)

        assert len(result) == 3
        assert result.index.equals(series.index[2:])
        np.testing.assert_allclose(result.values, [2.0, 3.0, 4.0])

    def test_sma_window_one_is_identity(self) -> None:
        """Test window 1 returns the input values."""
        series = TimeSeries.from_values([3.0, 1.0, 2.0])

        assert series.sma(1) == series

    def test_sma_window_equal_length(self) -> None:
        """Test window equal to length gives one point."""
        series = TimeSeries.from_values([2.0, 4.0])

        result = series.sma(2)

        assert result.values.tolist() == [3.0]

    @pytest.mark.parametrize("window", [0, 4])
    def test_sma_window_out_of_range(self, window: int) -> None:
        """Test invalid window sizes raise."""
        with pytest.raises(TimeSeriesError):
            TimeSeries.from_values([1.0, 2.0, 3.0]).sma(window)

    def test_zero_negatives(self) -> None:
        """Test negatives are clamped to zero."""
        series = TimeSeries.from_values([-1.0, 0.0, 2.0])

        assert series.zero_negatives().values.tolist() == [0.0, 0.0, 2.0]

    def test_relative_change(self) -> None:
        """Test point-over-point relative change drops the first point."""
        series = TimeSeries.from_values([100.0, 110.0, 99.0])

        result = series.relative_change()

        assert result.index.equals(series.index[1:])
        np.testing.assert_allclose(result.values, [0.1, -0.1])

    def test_relative_change_short(self) -> None:
        """Test a single point gives an empty result."""
        assert TimeSeries.from_values([1.0]).relative_change().is_empty()


class TestFilters:
    """Tests for timestamp range filters."""

    @pytest.fixture
    def series(self) -> TimeSeries:
        return TimeSeries.from_values([1.0, 2.0, 3.0, 4.0], start="2020-01-01")

    def test_filter_le(self, series: TimeSeries) -> None:
        assert series.filter_le("2020-01-02").values.tolist() == [1.0, 2.0]

    def test_filter_lt(self, series: TimeSeries) -> None:
        assert series.filter_lt("2020-01-02").values.tolist() == [1.0]

    def test_filter_ge(self, series: TimeSeries) -> None:
        assert series.filter_ge("2020-01-03").values.tolist() == [3.0, 4.0]

    def test_filter_gt(self, series: TimeSeries) -> None:
        assert series.filter_gt("2020-01-03").values.tolist() == [4.0]

    def test_filter_between_points(self, series: TimeSeries) -> None:
        """Test a timestamp between points splits correctly."""
        cut = pd.Timestamp("2020-01-02 12:00")

        assert len(series.filter_le(cut)) == 2
        assert len(series.filter_gt(cut)) == 2

    def test_filter_before_start(self, series: TimeSeries) -> None:
        """Test filtering before the first point is empty."""
        assert series.filter_le("2019-12-31").is_empty()
