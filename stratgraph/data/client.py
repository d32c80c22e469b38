from __future__ import annotations

"""Market data client interface.

The engine only consumes the ``DataClient`` protocol. ``FrameDataClient``
is the in-process implementation backed by wide pandas frames (index is
date, columns are symbols), the same layout the backtest code uses for
prices.

Every query is look-ahead free: the returned series never contains a
point later than the requested as-of timestamp.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable

import pandas as pd

from ..exceptions import AssetNotFoundError
from ..timeseries import TimeSeries

logger = logging.getLogger(__name__)

# Field names understood by FrameDataClient
CLOSE = "close"
RELATIVE_PRICE_CHANGE = "relative_price_change"


@dataclass(frozen=True, order=True)
class Asset:
    """Tradable asset, identified by its symbol."""

    symbol: str

    def __str__(self) -> str:
        return self.symbol


@runtime_checkable
class DataClient(Protocol):
    """Capability the engine needs from a market data source."""

    def assets(self) -> Mapping[str, Asset]:
        """Universe of tradable assets keyed by symbol."""
        ...

    def asset(self, symbol: str) -> Asset:
        """Asset for ``symbol``; raises AssetNotFoundError if unknown."""
        ...

    def query(self, asset: Asset, as_of: Any, field: str | None = None) -> TimeSeries:
        """Series of ``field`` for ``asset`` with index <= ``as_of``."""
        ...


class FrameDataClient:
    """
    Data client serving fields from in-memory DataFrames.

    Parameters
    ----------
    prices : pd.DataFrame
        Close prices. Index is date, columns are symbols.
    fields : dict[str, pd.DataFrame] | None
        Additional named fields with the same layout.
    default_field : str, default "close"
        Field served when a query does not name one.

    Notes
    -----
    ``relative_price_change`` is derived from prices as
    ``p_t / p_{t-1} - 1``; the first date has no value.

    Examples
    --------
    >>> client = FrameDataClient(prices)
    >>> client.query(client.asset("A"), "2023-01-05").last()
    101.2
    """

    def __init__(
        self,
        prices: pd.DataFrame,
        fields: dict[str, pd.DataFrame] | None = None,
        default_field: str = CLOSE,
    ) -> None:
        prices = prices.sort_index()
        prices.index = pd.DatetimeIndex(prices.index)

        self._frames: dict[str, pd.DataFrame] = {
            CLOSE: prices,
            RELATIVE_PRICE_CHANGE: (prices / prices.shift(1) - 1).iloc[1:],
        }
        for name, frame in (fields or {}).items():
            frame = frame.sort_index()
            frame.index = pd.DatetimeIndex(frame.index)
            self._frames[name] = frame

        self._default_field = default_field
        self._assets = {str(symbol): Asset(str(symbol)) for symbol in prices.columns}
        self._columns = {str(symbol): symbol for symbol in prices.columns}
        # Full-history series cached per (field, symbol); queries slice them
        self._series: dict[tuple[str, str], TimeSeries] = {}

        logger.info(
            f"FrameDataClient: {len(self._assets)} assets, "
            f"{len(prices)} dates, fields={sorted(self._frames)}"
        )

    @property
    def fields(self) -> list[str]:
        return sorted(self._frames)

    def assets(self) -> dict[str, Asset]:
        return dict(self._assets)

    def asset(self, symbol: str) -> Asset:
        try:
            return self._assets[symbol]
        except KeyError:
            raise AssetNotFoundError(symbol) from None

    def query(self, asset: Asset, as_of: Any, field: str | None = None) -> TimeSeries:
        field = field or self._default_field
        if asset.symbol not in self._assets:
            raise AssetNotFoundError(asset.symbol)
        if field not in self._frames:
            raise KeyError(f"Unknown field '{field}'; available: {self.fields}")

        key = (field, asset.symbol)
        series = self._series.get(key)
        if series is None:
            frame = self._frames[field]
            column = self._columns[asset.symbol]
            if column not in frame.columns:
                raise KeyError(f"Field '{field}' has no data for {asset.symbol}")
            series = TimeSeries.from_series(frame[column].dropna())
            self._series[key] = series

        return series.filter_le(as_of)
