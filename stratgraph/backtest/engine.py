from __future__ import annotations

"""Backtesting engine.

Replays a strategy over an ascending sequence of timestamps and measures
realized performance.

Lookahead Prevention Rules
1. Allocation at t uses only data with index <= t
2. Return at t is earned by the allocation of the previous timestamp
3. Return at t uses each asset's relative price change at t
4. The first timestamp produces no return
"""

import logging
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd

from ..data.client import RELATIVE_PRICE_CHANGE, Asset, DataClient
from ..data.config import EngineConfig
from ..exceptions import AssetNotFoundError, UpstreamQueryError
from ..strategy.graph import CalculationGraph, build_graph
from ..strategy.model import Strategy
from ..timeseries import TimeSeries
from .allocation import AssetAllocations, AssetAllocator
from .results import BacktestResult

logger = logging.getLogger(__name__)


def total_return(returns: TimeSeries | pd.Series | Sequence[float]) -> float:
    """
    Compounded return ``prod(1 + r) - 1``.

    Examples
    --------
    >>> round(total_return([0.01, -0.02, 0.03]), 6)
    0.019494
    """
    values = returns.values if isinstance(returns, TimeSeries) else np.asarray(returns, dtype=float)
    if len(values) == 0:
        return 0.0
    return float(np.prod(1.0 + values) - 1.0)


def compute_returns(
    allocations: pd.DataFrame,
    prices: pd.DataFrame,
) -> pd.Series:
    """
    Vectorized portfolio returns from an allocation frame.

    Parameters
    ----------
    allocations : pd.DataFrame
        Weights indexed by timestamp, columns are symbols.
    prices : pd.DataFrame
        Full price history with the same columns.

    Returns
    -------
    pd.Series
        Returns indexed by ``allocations.index[1:]``.

    Notes
    -----
    Return at t_i = sum(weight_{t_{i-1}} * (p_{t_i} / p_{t_i - 1} - 1)), where
    ``t_i - 1`` is the previous price date. Gives the same numbers as
    ``BacktestRunner.compute_performance`` for a FrameDataClient.
    """
    asset_returns = (prices / prices.shift(1) - 1).reindex(allocations.index)
    lagged = allocations.shift(1)
    strategy_returns = (lagged * asset_returns[allocations.columns]).sum(axis=1, min_count=1)
    return strategy_returns.iloc[1:]


def compute_metrics(returns: pd.Series, periods_per_year: int = 252) -> dict[str, float]:
    """
    Compute performance metrics from returns.

    Parameters
    ----------
    returns : pd.Series
        Strategy returns.
    periods_per_year : int, default 252
        Annualization factor.

    Returns
    -------
    dict[str, float]
        Dictionary of metrics. Empty with fewer than two periods.
    """
    if len(returns) < 2:
        logger.warning("compute_metrics: fewer than 2 return periods, returning empty metrics")
        return {}

    # Sharpe ratio: mean / std * sqrt(periods), ddof=1, rf=0
    std = returns.std(ddof=1)
    sharpe = float((returns.mean() / std) * np.sqrt(periods_per_year)) if std > 0 else np.nan

    # Max drawdown: (cum - peak) / peak
    cum_returns = (1 + returns).cumprod()
    running_max = cum_returns.cummax()
    drawdown = (cum_returns - running_max) / running_max

    total = total_return(returns)

    years = len(returns) / periods_per_year
    if total <= -1.0:
        ann_return = np.nan
    else:
        ann_return = float((1 + total) ** (1 / years) - 1)

    return {
        "total_return": total,
        "annualized_return": ann_return,
        "mean_return": float(returns.mean()),
        "volatility": float(std * np.sqrt(periods_per_year)),
        "sharpe_ratio": sharpe,
        "max_drawdown": float(drawdown.min()),
        "win_rate": float((returns > 0).mean()),
        "loss_rate": float((returns < 0).mean()),
    }


def _validate_timestamps(timestamps: Sequence[Any]) -> pd.DatetimeIndex:
    index = pd.DatetimeIndex(timestamps)
    if len(index) == 0:
        raise ValueError("Backtest needs at least one timestamp")
    if not index.is_monotonic_increasing or not index.is_unique:
        raise ValueError("Backtest timestamps must be strictly ascending without duplicates")
    return index


class BacktestRunner:
    """
    Drives the allocator across timestamps and compounds returns.

    Parameters
    ----------
    graph : CalculationGraph
        Compiled strategy.
    data_client : DataClient
        Market data source; must serve ``relative_price_change``.
    config : EngineConfig | None
        Engine settings.

    Examples
    --------
    >>> runner = BacktestRunner.from_strategy(strategy, MockDataClient())
    >>> result = runner.run(pd.date_range("2012-03-01", periods=30))
    >>> print(result.summary())
    """

    def __init__(
        self,
        graph: CalculationGraph,
        data_client: DataClient,
        config: EngineConfig | None = None,
    ) -> None:
        self.graph = graph
        self.data_client = data_client
        self.config = config or EngineConfig()
        self.allocator = AssetAllocator(graph, data_client, self.config)

    @classmethod
    def from_strategy(
        cls,
        strategy: Strategy,
        data_client: DataClient,
        config: EngineConfig | None = None,
    ) -> BacktestRunner:
        """Compile ``strategy`` with the configured component policy and wrap it."""
        config = config or EngineConfig()
        graph = build_graph(strategy, strict_components=config.strict_components)
        return cls(graph, data_client, config)

    def compute_allocations(
        self,
        timestamps: Sequence[Any],
    ) -> dict[pd.Timestamp, AssetAllocations]:
        """
        Allocations for every timestamp, computed in order, once each.

        Raises
        ------
        ValueError
            If timestamps are empty, unsorted or duplicated.
        """
        index = _validate_timestamps(timestamps)
        allocations: dict[pd.Timestamp, AssetAllocations] = {}
        for timestamp in index:
            allocations[timestamp] = self.allocator.compute_allocations(timestamp)
        return allocations

    def compute_performance(
        self,
        allocations: Mapping[pd.Timestamp, AssetAllocations],
    ) -> TimeSeries:
        """
        Daily portfolio returns from consecutive allocations.

        Return at t_i is ``sum(weight_{t_{i-1}}[a] * relative_price_change_a(t_i))``
        over the assets allocated at t_{i-1}.
        """
        timestamps = _validate_timestamps(list(allocations.keys()))

        returns: list[float] = []
        for yesterday, today in zip(timestamps[:-1], timestamps[1:]):
            previous = allocations[yesterday]
            day_return = 0.0
            for asset, weight in previous.allocations.items():
                day_return += weight * self._relative_price_change(asset, today)
            returns.append(day_return)

        return TimeSeries(timestamps[1:], returns)

    def run(self, timestamps: Sequence[Any]) -> BacktestResult:
        """
        Full backtest: allocations, returns and metrics.

        Any failing day aborts the whole run.
        """
        logger.info(
            f"Starting backtest of '{self.graph.strategy.name}' over {len(timestamps)} timestamps..."
        )

        allocations = self.compute_allocations(timestamps)
        performance = self.compute_performance(allocations)

        allocation_frame = pd.DataFrame(
            [a.to_series() for a in allocations.values()],
            index=pd.DatetimeIndex(list(allocations.keys())),
        )
        returns = performance.to_series(name="returns")

        result = BacktestResult(
            returns=returns,
            allocations=allocation_frame,
            metrics=compute_metrics(returns, self.config.periods_per_year),
            config={
                "strategy": self.graph.strategy.name,
                "score": self.graph.score_name,
                "start": str(allocation_frame.index[0]),
                "end": str(allocation_frame.index[-1]),
                "periods_per_year": self.config.periods_per_year,
            },
        )

        logger.info(f"Backtest complete. Total return: {result.total_return:.2%}")

        return result

    def _relative_price_change(self, asset: Asset, timestamp: pd.Timestamp) -> float:
        try:
            series = self.data_client.query(asset, timestamp, RELATIVE_PRICE_CHANGE)
        except AssetNotFoundError:
            raise
        except Exception as exc:
            raise UpstreamQueryError(asset, timestamp, RELATIVE_PRICE_CHANGE, exc) from exc

        value = series.get(timestamp)
        if value is None:
            raise UpstreamQueryError(
                asset,
                timestamp,
                RELATIVE_PRICE_CHANGE,
                LookupError(f"no relative price change at {timestamp}"),
            )
        return value
