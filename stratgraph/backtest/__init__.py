"""Backtest Package - Allocation and strategy replay.

This package turns per-asset scores into portfolio weights and replays
them over a timestamp sequence to measure realized returns.

Public API:
- AssetAllocator, AssetAllocations, normalize_scores: allocation
- BacktestRunner: historical replay
- total_return, compute_returns, compute_metrics: return and metric computation
- BacktestResult: Result container
"""

from .allocation import AssetAllocations, AssetAllocator, normalize_scores
from .engine import BacktestRunner, compute_metrics, compute_returns, total_return
from .results import BacktestResult

__all__ = [
    "AssetAllocations",
    "AssetAllocator",
    "normalize_scores",
    "BacktestRunner",
    "compute_metrics",
    "compute_returns",
    "total_return",
    "BacktestResult",
]
