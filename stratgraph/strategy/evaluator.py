"""Calculation evaluator.

Runs one pass of a compiled graph for a single ``(asset, as_of)`` context.
Node outputs live in a pass-local arena (a list indexed by topological
position), so operand resolution is a list lookup. Each node runs exactly
once per pass regardless of fan-out. A pass is all-or-nothing: any error
aborts it and no partial outputs escape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

import pandas as pd

from ..exceptions import (
    AssetNotFoundError,
    StrategyGraphError,
    UpstreamNotFoundError,
    UpstreamQueryError,
)
from ..timeseries import TimeSeries
from .graph import CalculationGraph, CompiledNode, QueryNode, ScalarNode, SeriesNode, SmaNode
from .model import Operation

if TYPE_CHECKING:
    from ..data.client import Asset, DataClient

logger = logging.getLogger(__name__)

_SCALAR_OPS: dict[Operation, Callable[[TimeSeries, float], TimeSeries]] = {
    Operation.ADD: TimeSeries.add,
    Operation.SUB: TimeSeries.sub,
    Operation.MUL: TimeSeries.mul,
    Operation.DIV: TimeSeries.div,
}

_SERIES_OPS: dict[Operation, Callable[[TimeSeries, TimeSeries], TimeSeries]] = {
    Operation.TS_ADD: TimeSeries.ts_add,
    Operation.TS_SUB: TimeSeries.ts_sub,
    Operation.TS_MUL: TimeSeries.ts_mul,
    Operation.TS_DIV: TimeSeries.ts_div,
}


@dataclass
class AssetScore:
    """Result of one evaluation pass.

    Attributes
    ----------
    asset : Asset
        Evaluated asset.
    timestamp : pd.Timestamp
        As-of timestamp of the pass.
    score : TimeSeries
        Output of the strategy's score calculation.
    outputs : dict[str, TimeSeries]
        Output of every calculation, keyed by name.
    """

    asset: Asset
    timestamp: pd.Timestamp
    score: TimeSeries
    outputs: dict[str, TimeSeries] = field(default_factory=dict, repr=False)


class CalculationEvaluator:
    """
    Evaluates a compiled graph against a data client.

    Parameters
    ----------
    graph : CalculationGraph
        Validated graph from ``build_graph``.
    data_client : DataClient
        Source for QUERY nodes.

    Examples
    --------
    >>> evaluator = CalculationEvaluator(build_graph(strategy), client)
    >>> evaluator.evaluate(client.asset("A"), "2012-06-01").score.last()
    0.0123
    """

    def __init__(self, graph: CalculationGraph, data_client: DataClient) -> None:
        self.graph = graph
        self.data_client = data_client

    def evaluate(self, asset: Asset, as_of: Any) -> AssetScore:
        """
        Run every node in topological order for ``asset`` as of ``as_of``.

        Raises
        ------
        AssetNotFoundError
            Propagated unchanged from the data client.
        UpstreamQueryError
            Any other data client failure, with asset/timestamp context.
        TimeSeriesError
            Propagated unchanged from the series algebra.
        """
        as_of = pd.Timestamp(as_of)
        arena: list[TimeSeries | None] = [None] * len(self.graph.nodes)

        for position, node in enumerate(self.graph.nodes):
            try:
                arena[position] = self._run_node(node, arena, asset, as_of)
            except StrategyGraphError as exc:
                logger.debug(f"Calculation '{node.name}' failed for {asset} as of {as_of}: {exc}")
                raise

        outputs = {node.name: arena[pos] for pos, node in enumerate(self.graph.nodes)}
        return AssetScore(
            asset=asset,
            timestamp=as_of,
            score=arena[self.graph.score_position],
            outputs=outputs,
        )

    def _run_node(
        self,
        node: CompiledNode,
        arena: list[TimeSeries | None],
        asset: Asset,
        as_of: pd.Timestamp,
    ) -> TimeSeries:
        match node:
            case QueryNode():
                return self._query(node, asset, as_of)
            case ScalarNode(operation=op, source=source, scalar=scalar):
                return _SCALAR_OPS[op](self._upstream(arena, source), scalar)
            case SeriesNode(operation=op, left=left, right=right):
                return _SERIES_OPS[op](self._upstream(arena, left), self._upstream(arena, right))
            case SmaNode(source=source, window_size=window_size):
                return self._upstream(arena, source).sma(window_size)
            case _:
                raise TypeError(f"Unknown node type {type(node).__name__}")

    def _upstream(self, arena: list[TimeSeries | None], position: int) -> TimeSeries:
        series = arena[position]
        if series is None:
            raise UpstreamNotFoundError(self.graph.nodes[position].name)
        return series

    def _query(self, node: QueryNode, asset: Asset, as_of: pd.Timestamp) -> TimeSeries:
        try:
            series = self.data_client.query(asset, as_of, node.field)
        except AssetNotFoundError:
            raise
        except Exception as exc:
            raise UpstreamQueryError(asset, as_of, node.field, exc) from exc
        logger.debug(f"{node.name}: {asset} {node.field} as of {as_of}: {len(series)} points")
        return series
