from __future__ import annotations

"""Asset scoring and portfolio allocation.

For one timestamp, every asset in the universe is scored independently by
the calculation evaluator, negative scores are clamped to zero (long only),
and each asset's weight is its latest zeroed score divided by the
cross-sectional sum. Weights are non-negative and sum to 1.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import pandas as pd

from ..data.client import Asset, DataClient
from ..data.config import EngineConfig
from ..exceptions import DegenerateAllocationError, TimeSeriesError
from ..strategy.evaluator import AssetScore, CalculationEvaluator
from ..strategy.graph import CalculationGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetAllocations:
    """Portfolio weights at one timestamp.

    Attributes
    ----------
    timestamp : pd.Timestamp
        Allocation timestamp.
    allocations : Mapping[Asset, float]
        Read-only weights keyed by asset, in symbol order.
    """

    timestamp: pd.Timestamp
    allocations: Mapping[Asset, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ordered = {asset: float(self.allocations[asset]) for asset in sorted(self.allocations)}
        object.__setattr__(self, "allocations", MappingProxyType(ordered))

    def __len__(self) -> int:
        return len(self.allocations)

    def weight(self, asset: Asset) -> float:
        return self.allocations[asset]

    @property
    def total(self) -> float:
        return math.fsum(self.allocations.values())

    def to_series(self) -> pd.Series:
        """Weights as a Series indexed by symbol."""
        return pd.Series(
            {asset.symbol: weight for asset, weight in self.allocations.items()},
            name=self.timestamp,
            dtype=float,
        )


def normalize_scores(
    latest: Mapping[Asset, float],
    timestamp: Any = None,
) -> dict[Asset, float]:
    """
    Convert latest scores into long-only portfolio weights.

    Parameters
    ----------
    latest : Mapping[Asset, float]
        Most recent score per asset.
    timestamp : Any, optional
        Used only for error context.

    Returns
    -------
    dict[Asset, float]
        ``max(score, 0) / sum(max(score, 0))`` per asset.

    Raises
    ------
    DegenerateAllocationError
        If the sum of zeroed scores is zero (including an empty universe).
    TimeSeriesError
        If any score is not finite.

    Examples
    --------
    >>> normalize_scores({Asset("A"): 2.0, Asset("B"): -1.0, Asset("C"): 2.0})
    {Asset(symbol='A'): 0.5, Asset(symbol='B'): 0.0, Asset(symbol='C'): 0.5}
    """
    zeroed: dict[Asset, float] = {}
    for asset, score in latest.items():
        if not math.isfinite(score):
            raise TimeSeriesError(f"non-finite score {score} for {asset} at {timestamp}")
        zeroed[asset] = score if score > 0 else 0.0

    score_sum = math.fsum(zeroed.values())
    if score_sum == 0:
        raise DegenerateAllocationError(timestamp)

    return {asset: score / score_sum for asset, score in zeroed.items()}


class AssetAllocator:
    """
    Scores the universe and normalizes scores into weights.

    Parameters
    ----------
    graph : CalculationGraph
        Compiled strategy.
    data_client : DataClient
        Market data source; also defines the universe.
    config : EngineConfig | None
        Engine settings; ``max_workers`` sizes the per-asset thread pool.
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
        self.evaluator = CalculationEvaluator(graph, data_client)

    def universe(self) -> list[Asset]:
        return sorted(self.data_client.assets().values())

    def score_assets(
        self,
        timestamp: Any,
        assets: Iterable[Asset] | None = None,
    ) -> dict[Asset, AssetScore]:
        """
        Evaluate the strategy for each asset as of ``timestamp``.

        Assets are independent, so they are fanned out over a thread pool;
        each evaluation owns its own node arena. The first failure aborts
        the whole timestamp.

        Returns
        -------
        dict[Asset, AssetScore]
            Scores ordered by asset.
        """
        timestamp = pd.Timestamp(timestamp)
        assets = sorted(assets) if assets is not None else self.universe()

        if self.config.max_workers == 1 or len(assets) <= 1:
            scores = [self.evaluator.evaluate(asset, timestamp) for asset in assets]
        else:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                scores = list(
                    pool.map(lambda asset: self.evaluator.evaluate(asset, timestamp), assets)
                )

        return {score.asset: score for score in scores}

    def compute_allocations(self, timestamp: Any) -> AssetAllocations:
        """
        Portfolio weights at ``timestamp``.

        Raises
        ------
        DegenerateAllocationError
            If every asset's latest zeroed score is zero.
        TimeSeriesError
            If an asset's score series is empty.
        """
        timestamp = pd.Timestamp(timestamp)
        scores = self.score_assets(timestamp)

        latest: dict[Asset, float] = {}
        for asset, asset_score in scores.items():
            zeroed = asset_score.score.zero_negatives()
            if zeroed.is_empty():
                raise TimeSeriesError(f"score for {asset} as of {timestamp} is empty")
            latest[asset] = zeroed.last()

        weights = normalize_scores(latest, timestamp)
        logger.debug(f"Allocations at {timestamp}: {len(weights)} assets")
        return AssetAllocations(timestamp=timestamp, allocations=weights)
