"""Data layer.

This is the only package that touches files or market data sources.
Everything else receives a ``DataClient`` or parsed objects.

Public API:
- Asset, DataClient, FrameDataClient: market data access
- MockDataClient, simulate_prices: deterministic simulated market
- load_config, get_nested, load_strategy, EngineConfig: configuration
"""

from .client import CLOSE, RELATIVE_PRICE_CHANGE, Asset, DataClient, FrameDataClient
from .config import EngineConfig, get_nested, load_config, load_strategy
from .simulation import MockDataClient, simulate_prices

__all__ = [
    "CLOSE",
    "RELATIVE_PRICE_CHANGE",
    "Asset",
    "DataClient",
    "FrameDataClient",
    "EngineConfig",
    "get_nested",
    "load_config",
    "load_strategy",
    "MockDataClient",
    "simulate_prices",
]
