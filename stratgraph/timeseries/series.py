"""Immutable one-dimensional time series.

A ``TimeSeries`` pairs a strictly increasing ``pd.DatetimeIndex`` with a
float64 ``np.ndarray`` of the same length. Every operation returns a new
instance; the backing arrays are marked read-only so outputs can be handed
between graph nodes without copying.
"""

from __future__ import annotations

from typing import Any, Iterator

import numpy as np
import pandas as pd

from ..exceptions import DivisionByZeroError, TimeSeriesError
from .join import align

# First index timestamp used by from_values
EPOCH = pd.Timestamp("2010-01-01")


class TimeSeries:
    """Ordered sequence of (timestamp, value) pairs.

    Parameters
    ----------
    index : array-like of datetime
        Strictly increasing timestamps.
    values : array-like of float
        Values, same length as ``index``.

    Raises
    ------
    TimeSeriesError
        If lengths differ or the index is not strictly increasing.

    Examples
    --------
    >>> ts = TimeSeries.from_values([1.0, 2.0, 3.0])
    >>> ts.sma(2).values
    array([1.5, 2.5])
    """

    __slots__ = ("_index", "_values")

    def __init__(self, index: Any, values: Any) -> None:
        # Resolution is fixed to ns so indices from different sources compare equal
        index = pd.DatetimeIndex(index).as_unit("ns")
        values = np.array(values, dtype=np.float64)

        if values.ndim != 1:
            raise TimeSeriesError(f"values must be one-dimensional, got shape {values.shape}")
        if len(index) != len(values):
            raise TimeSeriesError(
                f"index ({len(index)}) and values ({len(values)}) must have equal length"
            )
        if not index.is_monotonic_increasing or not index.is_unique:
            raise TimeSeriesError("index must be strictly increasing without duplicates")

        values.flags.writeable = False
        self._index = index
        self._values = values

    @classmethod
    def _trusted(cls, index: pd.DatetimeIndex, values: np.ndarray) -> TimeSeries:
        """Build without validation; callers guarantee the invariants."""
        ts = cls.__new__(cls)
        if values.flags.writeable:
            values.flags.writeable = False
        ts._index = index
        ts._values = values
        return ts

    @classmethod
    def empty(cls) -> TimeSeries:
        return cls._trusted(pd.DatetimeIndex([], dtype="datetime64[ns]"), np.empty(0, dtype=np.float64))

    @classmethod
    def from_values(
        cls,
        values: Any,
        start: Any = EPOCH,
        freq: str = "D",
    ) -> TimeSeries:
        """
        Build a series on a regular index.

        Parameters
        ----------
        values : array-like of float
            Values in chronological order.
        start : datetime-like, default 2010-01-01
            First timestamp.
        freq : str, default "D"
            Index frequency.

        Returns
        -------
        TimeSeries
        """
        values = np.array(values, dtype=np.float64)
        index = pd.date_range(start=start, periods=len(values), freq=freq)
        return cls(index, values)

    @classmethod
    def from_series(cls, series: pd.Series) -> TimeSeries:
        """Build from a pandas Series with a datetime index (sorted first)."""
        series = series.sort_index()
        return cls(series.index, series.to_numpy(dtype=np.float64))

    def to_series(self, name: str | None = None) -> pd.Series:
        """Export as a pandas Series."""
        return pd.Series(np.array(self._values), index=self._index.copy(), name=name)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def index(self) -> pd.DatetimeIndex:
        return self._index

    @property
    def values(self) -> np.ndarray:
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[tuple[pd.Timestamp, float]]:
        return zip(self._index, self._values.tolist())

    def is_empty(self) -> bool:
        return len(self._values) == 0

    def get(self, timestamp: Any) -> float | None:
        """Value at exactly ``timestamp``, or None if absent."""
        timestamp = pd.Timestamp(timestamp)
        pos = self._index.searchsorted(timestamp, side="left")
        if pos < len(self._index) and self._index[pos] == timestamp:
            return float(self._values[pos])
        return None

    def last(self) -> float:
        """Most recent value."""
        if self.is_empty():
            raise TimeSeriesError("last() called on an empty time series")
        return float(self._values[-1])

    def last_timestamp(self) -> pd.Timestamp:
        if self.is_empty():
            raise TimeSeriesError("last_timestamp() called on an empty time series")
        return self._index[-1]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSeries):
            return NotImplemented
        return self._index.equals(other._index) and np.array_equal(self._values, other._values)

    __hash__ = None  # type: ignore[assignment]

    def allclose(self, other: TimeSeries, rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        """Identical index and values equal within tolerance."""
        return self._index.equals(other._index) and np.allclose(
            self._values, other._values, rtol=rtol, atol=atol
        )

    def __repr__(self) -> str:
        if self.is_empty():
            return "TimeSeries(len=0)"
        return (
            f"TimeSeries(len={len(self)}, first={self._index[0]}, "
            f"last={self._index[-1]}, last_value={self._values[-1]:.6g})"
        )

    # ------------------------------------------------------------------
    # Scalar arithmetic
    # ------------------------------------------------------------------

    def add(self, scalar: float) -> TimeSeries:
        return TimeSeries._trusted(self._index, self._values + scalar)

    def sub(self, scalar: float) -> TimeSeries:
        return TimeSeries._trusted(self._index, self._values - scalar)

    def mul(self, scalar: float) -> TimeSeries:
        return TimeSeries._trusted(self._index, self._values * scalar)

    def div(self, scalar: float) -> TimeSeries:
        if scalar == 0:
            raise DivisionByZeroError("division of time series by scalar zero")
        return TimeSeries._trusted(self._index, self._values / scalar)

    # ------------------------------------------------------------------
    # Series-series arithmetic (aligned on the index intersection)
    # ------------------------------------------------------------------

    def ts_add(self, other: TimeSeries) -> TimeSeries:
        left, right = align(self, other)
        return TimeSeries._trusted(left.index, left.values + right.values)

    def ts_sub(self, other: TimeSeries) -> TimeSeries:
        left, right = align(self, other)
        return TimeSeries._trusted(left.index, left.values - right.values)

    def ts_mul(self, other: TimeSeries) -> TimeSeries:
        left, right = align(self, other)
        return TimeSeries._trusted(left.index, left.values * right.values)

    def ts_div(self, other: TimeSeries) -> TimeSeries:
        left, right = align(self, other)
        zeros = right.values == 0
        if zeros.any():
            first = left.index[np.argmax(zeros)]
            raise DivisionByZeroError(
                f"division by zero in {int(zeros.sum())} aligned point(s), first at {first}"
            )
        return TimeSeries._trusted(left.index, left.values / right.values)

    # ------------------------------------------------------------------
    # Windowed and elementwise transforms
    # ------------------------------------------------------------------

    def sma(self, window_size: int) -> TimeSeries:
        """
        Trailing simple moving average over index positions.

        Parameters
        ----------
        window_size : int
            Number of consecutive points per window, 1 <= window_size <= len.

        Returns
        -------
        TimeSeries
            ``len - window_size + 1`` points, each stamped with the last
            timestamp of its window.

        Raises
        ------
        TimeSeriesError
            If ``window_size`` is out of range.
        """
        if window_size < 1:
            raise TimeSeriesError(f"window_size must be >= 1, got {window_size}")
        if window_size > len(self):
            raise TimeSeriesError(
                f"window_size {window_size} exceeds time series length {len(self)}"
            )
        windows = np.lib.stride_tricks.sliding_window_view(self._values, window_size)
        return TimeSeries._trusted(self._index[window_size - 1:], windows.mean(axis=1))

    def zero_negatives(self) -> TimeSeries:
        """Clamp values below zero to zero."""
        return TimeSeries._trusted(self._index, np.where(self._values < 0, 0.0, self._values))

    def relative_change(self) -> TimeSeries:
        """
        Point-over-point relative change ``x[t] / x[t-1] - 1``.

        The first point has no predecessor and is dropped.
        """
        if len(self) < 2:
            return TimeSeries.empty()
        previous = self._values[:-1]
        if (previous == 0).any():
            raise DivisionByZeroError("relative change from a zero value")
        return TimeSeries._trusted(self._index[1:], self._values[1:] / previous - 1.0)

    # ------------------------------------------------------------------
    # Range filters (binary search on the sorted index)
    # ------------------------------------------------------------------

    def _slice(self, start: int, stop: int) -> TimeSeries:
        return TimeSeries._trusted(self._index[start:stop], self._values[start:stop])

    def filter_le(self, timestamp: Any) -> TimeSeries:
        """Prefix with index <= ``timestamp`` (as-of view)."""
        stop = self._index.searchsorted(pd.Timestamp(timestamp), side="right")
        return self._slice(0, stop)

    def filter_lt(self, timestamp: Any) -> TimeSeries:
        stop = self._index.searchsorted(pd.Timestamp(timestamp), side="left")
        return self._slice(0, stop)

    def filter_ge(self, timestamp: Any) -> TimeSeries:
        start = self._index.searchsorted(pd.Timestamp(timestamp), side="left")
        return self._slice(start, len(self))

    def filter_gt(self, timestamp: Any) -> TimeSeries:
        start = self._index.searchsorted(pd.Timestamp(timestamp), side="right")
        return self._slice(start, len(self))
