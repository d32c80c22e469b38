"""Declarative trading strategy engine.

Package structure:
- timeseries: immutable time series algebra
- strategy: strategy model, graph builder, evaluator
- data: market data clients and configuration (sole file reader)
- backtest: allocation and historical replay
"""

from .backtest import AssetAllocations, AssetAllocator, BacktestResult, BacktestRunner
from .data import Asset, DataClient, EngineConfig, FrameDataClient, load_strategy
from .strategy import CalculationEvaluator, Strategy, build_graph
from .timeseries import TimeSeries, align

__version__ = "0.1.0"

__all__ = [
    "AssetAllocations",
    "AssetAllocator",
    "BacktestResult",
    "BacktestRunner",
    "Asset",
    "DataClient",
    "EngineConfig",
    "FrameDataClient",
    "load_strategy",
    "CalculationEvaluator",
    "Strategy",
    "build_graph",
    "TimeSeries",
    "align",
]
