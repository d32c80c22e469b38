"""Strategy declaration, graph compilation and evaluation.

Public API:
- Strategy, Calculation, Operand, Operation, OperandType: data model
- build_graph, CalculationGraph: validated DAG in evaluation order
- CalculationEvaluator, AssetScore: per-(asset, timestamp) evaluation
"""

from .model import Calculation, Operand, OperandType, Operation, Strategy
from .graph import (
    CalculationGraph,
    QueryNode,
    ScalarNode,
    SeriesNode,
    SmaNode,
    build_graph,
)
from .evaluator import AssetScore, CalculationEvaluator

__all__ = [
    "Calculation",
    "Operand",
    "OperandType",
    "Operation",
    "Strategy",
    "CalculationGraph",
    "QueryNode",
    "ScalarNode",
    "SeriesNode",
    "SmaNode",
    "build_graph",
    "AssetScore",
    "CalculationEvaluator",
]
