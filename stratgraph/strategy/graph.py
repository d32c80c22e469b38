"""Calculation graph builder.

Turns a ``Strategy`` into a validated, executable DAG:

1. one node per calculation name
2. an edge ``operand -> calc`` for every Reference operand naming a sibling
3. reject cycles (Kahn's algorithm; leftover nodes are on a cycle)
4. reject more than one weakly-connected component
5. compile each calculation, in topological order, into a typed node whose
   operands are arena positions rather than names

Traversals are iterative so pathological inputs cannot exhaust the stack.
Building is pure: the same strategy always yields the same graph.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, deque
from dataclasses import dataclass
from typing import Union

from ..exceptions import InvalidStrategyError, OperandTypeError
from .model import (
    SCALAR_OPERATIONS,
    SERIES_OPERATIONS,
    Calculation,
    Operand,
    OperandType,
    Operation,
    Strategy,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Compiled node variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryNode:
    """Read one external field from the data client."""

    name: str
    field: str | None


@dataclass(frozen=True)
class ScalarNode:
    """Series op constant (ADD/SUB/MUL/DIV)."""

    name: str
    operation: Operation
    source: int
    scalar: float


@dataclass(frozen=True)
class SeriesNode:
    """Series op series (TS_ADD/TS_SUB/TS_MUL/TS_DIV)."""

    name: str
    operation: Operation
    left: int
    right: int


@dataclass(frozen=True)
class SmaNode:
    """Trailing simple moving average."""

    name: str
    source: int
    window_size: int


CompiledNode = Union[QueryNode, ScalarNode, SeriesNode, SmaNode]


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalculationGraph:
    """Validated calculation DAG in evaluation order.

    Attributes
    ----------
    strategy : Strategy
        Source strategy.
    nodes : tuple[CompiledNode, ...]
        Compiled nodes in topological order; a node's operand positions
        always point to earlier entries.
    positions : dict[str, int]
        Calculation name to arena position.
    score_position : int
        Arena position of the score calculation.
    edges : tuple[tuple[str, str], ...]
        Distinct ``(operand, calc)`` dependency edges.
    """

    strategy: Strategy
    nodes: tuple[CompiledNode, ...]
    positions: dict[str, int]
    score_position: int
    edges: tuple[tuple[str, str], ...]

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def execution_order(self) -> list[str]:
        return [node.name for node in self.nodes]

    @property
    def score_name(self) -> str:
        return self.nodes[self.score_position].name

    def upstream(self, name: str) -> list[str]:
        """Direct dependencies of ``name``."""
        self._require(name)
        return [src for src, dst in self.edges if dst == name]

    def downstream(self, name: str) -> list[str]:
        """Direct dependents of ``name``."""
        self._require(name)
        return [dst for src, dst in self.edges if src == name]

    def _require(self, name: str) -> None:
        if name not in self.positions:
            raise KeyError(f"Calculation '{name}' not in graph")


def build_graph(strategy: Strategy, strict_components: bool = True) -> CalculationGraph:
    """
    Compile a strategy into an executable calculation graph.

    Parameters
    ----------
    strategy : Strategy
        Strategy declaration.
    strict_components : bool, default True
        If True, more than one connected component is fatal. If False it is
        logged as a warning and every component is still evaluated.

    Returns
    -------
    CalculationGraph

    Raises
    ------
    InvalidStrategyError
        Missing score, duplicate names, dangling reference, cycle, or
        disconnected graph.
    OperandTypeError
        Operand missing, of the wrong declared type, or unparseable.

    Examples
    --------
    >>> graph = build_graph(strategy)
    >>> graph.execution_order
    ['price', 'sma50', 'sma200', 'sma_diff', 'sma_gap']
    """
    calcs = strategy.calculations
    if not calcs:
        raise InvalidStrategyError(strategy.name, "zero connected components found")

    names = [c.name for c in calcs]
    duplicates = sorted(n for n, count in Counter(names).items() if count > 1)
    if duplicates:
        raise InvalidStrategyError(strategy.name, f"duplicate calculation names: {duplicates}")

    if strategy.score not in names:
        raise InvalidStrategyError(
            strategy.name, f"score calculation '{strategy.score}' not found"
        )

    edges = _collect_edges(strategy)
    order = _topological_order(strategy, names, edges)
    _check_components(strategy, names, edges, strict_components)

    by_name = {c.name: c for c in calcs}
    positions = {name: pos for pos, name in enumerate(order)}
    nodes = tuple(_compile(by_name[name], positions) for name in order)

    logger.info(
        f"Built graph for strategy '{strategy.name}': "
        f"{len(nodes)} nodes, {len(edges)} edges"
    )

    return CalculationGraph(
        strategy=strategy,
        nodes=nodes,
        positions=positions,
        score_position=positions[strategy.score],
        edges=tuple(edges),
    )


def _collect_edges(strategy: Strategy) -> list[tuple[str, str]]:
    names = {c.name for c in strategy.calculations}
    edges: list[tuple[str, str]] = []
    seen: set[tuple[str, str]] = set()

    for calc in strategy.calculations:
        for operand in calc.operands:
            if operand.type is not OperandType.REFERENCE:
                continue
            if operand.value in names:
                edge = (operand.value, calc.name)
                if edge not in seen:
                    seen.add(edge)
                    edges.append(edge)
            elif calc.operation is not Operation.QUERY:
                # Only QUERY may carry an external (non-calculation) reference
                raise InvalidStrategyError(
                    strategy.name,
                    f"calculation '{calc.name}' references unknown calculation "
                    f"{operand.value!r} via operand '{operand.name}'",
                )

    return edges


def _topological_order(
    strategy: Strategy,
    names: list[str],
    edges: list[tuple[str, str]],
) -> list[str]:
    successors: dict[str, list[str]] = {n: [] for n in names}
    indegree: dict[str, int] = {n: 0 for n in names}
    for src, dst in edges:
        successors[src].append(dst)
        indegree[dst] += 1

    queue = deque(n for n in names if indegree[n] == 0)
    order: list[str] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for nxt in successors[node]:
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)

    if len(order) < len(names):
        cyclic = [n for n in names if indegree[n] > 0]
        raise InvalidStrategyError(strategy.name, f"cyclic dependency among {cyclic}")

    return order


def _check_components(
    strategy: Strategy,
    names: list[str],
    edges: list[tuple[str, str]],
    strict: bool,
) -> None:
    neighbours: dict[str, list[str]] = {n: [] for n in names}
    for src, dst in edges:
        neighbours[src].append(dst)
        neighbours[dst].append(src)

    components: list[list[str]] = []
    visited: set[str] = set()
    for start in names:
        if start in visited:
            continue
        visited.add(start)
        component = [start]
        stack = [start]
        while stack:
            node = stack.pop()
            for nxt in neighbours[node]:
                if nxt not in visited:
                    visited.add(nxt)
                    component.append(nxt)
                    stack.append(nxt)
        components.append(component)

    if len(components) == 1:
        return

    score_component = next(c for c in components if strategy.score in c)
    orphans = sorted(n for n in names if n not in score_component)
    if strict:
        raise InvalidStrategyError(
            strategy.name,
            f"more than 1 connected component found ({len(components)}); "
            f"not connected to score: {orphans}",
        )
    logger.warning(
        f"Strategy '{strategy.name}' has {len(components)} connected components; "
        f"orphan calculations {orphans}"
    )


# ---------------------------------------------------------------------------
# Operand compilation
# ---------------------------------------------------------------------------


def _compile(calc: Calculation, positions: dict[str, int]) -> CompiledNode:
    op = calc.operation
    if op is Operation.QUERY:
        return QueryNode(name=calc.name, field=_field(calc))
    if op in SCALAR_OPERATIONS:
        return ScalarNode(
            name=calc.name,
            operation=op,
            source=_reference(calc, "time_series", positions),
            scalar=_decimal(calc, "scalar"),
        )
    if op in SERIES_OPERATIONS:
        return SeriesNode(
            name=calc.name,
            operation=op,
            left=_reference(calc, "left", positions),
            right=_reference(calc, "right", positions),
        )
    if op is Operation.SMA:
        return SmaNode(
            name=calc.name,
            source=_reference(calc, "time_series", positions),
            window_size=_window_size(calc),
        )
    raise ValueError(f"unsupported operation {op!r}")


def _required(calc: Calculation, role: str) -> Operand:
    operand = calc.operand(role)
    if operand is None:
        raise OperandTypeError(
            calc.name, role, f"required for {calc.operation.value} but missing"
        )
    return operand


def _field(calc: Calculation) -> str | None:
    operand = calc.operand("field")
    if operand is None:
        return None
    if operand.type not in (OperandType.TEXT, OperandType.REFERENCE):
        raise OperandTypeError(calc.name, "field", f"expected Text, got {operand.type.value}")
    return operand.value


def _reference(calc: Calculation, role: str, positions: dict[str, int]) -> int:
    operand = _required(calc, role)
    if operand.type is not OperandType.REFERENCE:
        raise OperandTypeError(calc.name, role, f"expected Reference, got {operand.type.value}")
    return positions[operand.value]


def _decimal(calc: Calculation, role: str) -> float:
    operand = _required(calc, role)
    if operand.type not in (OperandType.DECIMAL, OperandType.INTEGER):
        raise OperandTypeError(
            calc.name, role, f"expected Decimal or Integer, got {operand.type.value}"
        )
    try:
        value = float(operand.value)
    except (TypeError, ValueError):
        raise OperandTypeError(calc.name, role, f"cannot parse {operand.value!r} as a number") from None
    if not math.isfinite(value):
        raise OperandTypeError(calc.name, role, f"{operand.value!r} is not finite")
    return value


def _window_size(calc: Calculation) -> int:
    operand = _required(calc, "window_size")
    if operand.type is not OperandType.INTEGER:
        raise OperandTypeError(
            calc.name, "window_size", f"expected Integer, got {operand.type.value}"
        )
    try:
        window_size = int(operand.value)
    except (TypeError, ValueError):
        raise OperandTypeError(
            calc.name, "window_size", f"cannot parse {operand.value!r} as an integer"
        ) from None
    if window_size < 1:
        raise OperandTypeError(calc.name, "window_size", f"must be >= 1, got {window_size}")
    return window_size
