"""Ordered intersection of two time series.

Both inputs are sorted ascending, so the intersection is a single
merge-style scan: advance whichever side holds the smaller timestamp,
emit on equality, never backtrack.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .series import TimeSeries


def intersect_positions(
    lhs_index: pd.DatetimeIndex,
    rhs_index: pd.DatetimeIndex,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Positions of the shared timestamps in each index.

    Parameters
    ----------
    lhs_index, rhs_index : pd.DatetimeIndex
        Strictly increasing indices.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        Integer positions into ``lhs_index`` and ``rhs_index``; equal length,
        and ``lhs_index[l] == rhs_index[r]`` pairwise.

    Notes
    -----
    O(n + m). Comparisons run on the int64 nanosecond representation, so
    indices stored at different resolutions (s, ms, us, ns) still match.
    """
    lhs = lhs_index.as_unit("ns").asi8
    rhs = rhs_index.as_unit("ns").asi8
    n, m = len(lhs), len(rhs)

    lhs_pos: list[int] = []
    rhs_pos: list[int] = []
    i = j = 0
    while i < n and j < m:
        a, b = lhs[i], rhs[j]
        if a < b:
            i += 1
        elif a > b:
            j += 1
        else:
            lhs_pos.append(i)
            rhs_pos.append(j)
            i += 1
            j += 1

    return np.asarray(lhs_pos, dtype=np.intp), np.asarray(rhs_pos, dtype=np.intp)


def align(lhs: TimeSeries, rhs: TimeSeries) -> tuple[TimeSeries, TimeSeries]:
    """
    Restrict two series to the intersection of their indices.

    Parameters
    ----------
    lhs, rhs : TimeSeries
        Series to align.

    Returns
    -------
    tuple[TimeSeries, TimeSeries]
        New series with identical indices, order preserved. Empty if the
        indices do not overlap.

    Examples
    --------
    >>> left, right = align(a, b)
    >>> left.index.equals(right.index)
    True
    """
    from .series import TimeSeries

    lhs_pos, rhs_pos = intersect_positions(lhs.index, rhs.index)
    index = lhs.index[lhs_pos]
    return (
        TimeSeries._trusted(index, lhs.values[lhs_pos]),
        TimeSeries._trusted(index, rhs.values[rhs_pos]),
    )
