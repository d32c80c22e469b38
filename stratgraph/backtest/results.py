from __future__ import annotations

"""Backtest result container.

Holds the daily return series, the allocation history and the metrics of
one ``BacktestRunner.run``.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd


@dataclass
class BacktestResult:
    """Outputs of a strategy backtest.

    Attributes
    ----------
    returns : pd.Series
        Daily portfolio returns indexed by timestamp. The first backtest
        timestamp has no return.
    allocations : pd.DataFrame
        Weights indexed by timestamp with one column per symbol.
    metrics : dict[str, float]
        Output of ``compute_metrics``.
    config : dict[str, Any]
        Strategy name, score calculation and run bounds.

    Examples
    --------
    >>> result = runner.run(timestamps)
    >>> result.total_return
    0.031
    >>> result.weights_at("2012-03-05")["C"]
    0.42
    """

    returns: pd.Series
    allocations: pd.DataFrame
    metrics: dict[str, float] = field(default_factory=dict)
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def total_return(self) -> float:
        if len(self.returns) == 0:
            return 0.0
        return float(np.prod(1.0 + self.returns.to_numpy(dtype=float)) - 1.0)

    @property
    def n_days(self) -> int:
        """Number of days with a computed return."""
        return len(self.returns)

    @property
    def equity_curve(self) -> pd.Series:
        """Growth of one unit invested at the first timestamp."""
        return (1.0 + self.returns).cumprod()

    def weights_at(self, timestamp: Any) -> pd.Series:
        """Allocation row at ``timestamp``."""
        return self.allocations.loc[pd.Timestamp(timestamp)]

    def summary(self) -> str:
        """Human readable report."""
        strategy = self.config.get("strategy", "N/A")
        lines = [f"Strategy: {strategy}", "-" * (10 + len(str(strategy)))]
        if len(self.allocations):
            lines.append(
                f"Period: {self.allocations.index[0].date()} to {self.allocations.index[-1].date()}"
            )
        lines.append(f"Days: {self.n_days}  Assets: {len(self.allocations.columns)}")
        lines.append(f"Total Return: {self.total_return:.2%}")
        for name in ("annualized_return", "volatility", "sharpe_ratio", "max_drawdown"):
            if name in self.metrics:
                lines.append(f"{name.replace('_', ' ').title()}: {self.metrics[name]:.4f}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert to plain containers keyed by ISO timestamps."""
        return {
            "returns": {ts.isoformat(): float(r) for ts, r in self.returns.items()},
            "allocations": {
                ts.isoformat(): row.to_dict() for ts, row in self.allocations.iterrows()
            },
            "metrics": dict(self.metrics),
            "config": dict(self.config),
        }
