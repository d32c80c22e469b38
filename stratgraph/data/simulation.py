"""Deterministic simulated market.

Three assets on a daily index starting 2010-01-01:

- A: ``10 + 0.5 * sin(x)``
- B: ``5 + 0.5 * sin(x + pi)`` (A's mirror image)
- C: ``10 + 0.1 * x`` (steady uptrend)

with ``x`` spaced evenly over ``[0, 6 * pi]``. All prices stay strictly
positive, and C's trend keeps its moving-average gap positive so the
cross-sectional score sum never vanishes once enough history exists.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from ..timeseries import EPOCH
from .client import FrameDataClient

DATA_SIZE = 1_000
AMPLITUDE = 0.5


def simulate_prices(n: int = DATA_SIZE, start: pd.Timestamp = EPOCH) -> pd.DataFrame:
    """
    Simulated close prices.

    Parameters
    ----------
    n : int, default 1000
        Number of daily observations.
    start : pd.Timestamp, default 2010-01-01
        First date.

    Returns
    -------
    pd.DataFrame
        Prices indexed by date with columns A, B, C.
    """
    if n < 2:
        raise ValueError(f"n must be >= 2, got {n}")

    x = np.linspace(0.0, 6.0 * np.pi, n)
    dates = pd.date_range(start=start, periods=n, freq="D")

    return pd.DataFrame(
        {
            "A": 10.0 + AMPLITUDE * np.sin(x),
            "B": 5.0 + AMPLITUDE * np.sin(x + np.pi),
            "C": 10.0 + 0.1 * x,
        },
        index=dates,
    )


class MockDataClient(FrameDataClient):
    """FrameDataClient over ``simulate_prices``."""

    def __init__(self, n: int = DATA_SIZE, start: pd.Timestamp = EPOCH) -> None:
        super().__init__(simulate_prices(n, start))
        self.today = self._frames["close"].index[-1]
