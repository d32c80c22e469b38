"""
Exceptions raised by the strategy graph engine.

Every component fails fast with one of these types; none of them
substitutes a default value for a failed computation.
"""

from __future__ import annotations

from typing import Any


class StrategyGraphError(Exception):
    """Base class for all engine errors."""


class InvalidStrategyError(StrategyGraphError):
    """Raised when a strategy cannot be compiled into a valid graph.

    Attributes:
        strategy_name: Name of the offending strategy.
        reason: Human readable description of the structural defect.
    """

    def __init__(self, strategy_name: str, reason: str) -> None:
        self.strategy_name = strategy_name
        self.reason = reason
        super().__init__(f"Invalid strategy '{strategy_name}': {reason}")


class OperandTypeError(StrategyGraphError):
    """Raised when an operand is missing, has the wrong type, or fails to parse.

    Attributes:
        calculation: Name of the calculation owning the operand.
        operand: Operand role (e.g. "window_size").
    """

    def __init__(self, calculation: str, operand: str, message: str) -> None:
        self.calculation = calculation
        self.operand = operand
        super().__init__(f"Calculation '{calculation}', operand '{operand}': {message}")


class TimeSeriesError(StrategyGraphError):
    """Raised on invalid time series construction or arithmetic."""


class DivisionByZeroError(TimeSeriesError, ZeroDivisionError):
    """Raised when a time series operation would divide by zero."""


class AssetNotFoundError(StrategyGraphError, KeyError):
    """Raised when a data client does not know a symbol.

    Attributes:
        symbol: The unknown symbol.
    """

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"Asset with symbol '{symbol}' not found")

    def __str__(self) -> str:
        return self.args[0]


class UpstreamNotFoundError(StrategyGraphError):
    """Raised when a node reads an operand that has not been computed.

    This indicates a builder defect; validated graphs never trigger it.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Upstream calculation '{name}' not computed")


class UpstreamQueryError(StrategyGraphError):
    """Raised when the data client fails, with asset/timestamp context.

    Attributes:
        asset: Asset being evaluated.
        timestamp: As-of timestamp of the query.
        field: Field requested from the data client.
    """

    def __init__(self, asset: Any, timestamp: Any, field: str | None, cause: Exception) -> None:
        self.asset = asset
        self.timestamp = timestamp
        self.field = field
        super().__init__(
            f"Query for {asset} field={field!r} as of {timestamp} failed: {cause}"
        )


class DegenerateAllocationError(StrategyGraphError):
    """Raised when the cross-sectional score sum is zero.

    Attributes:
        timestamp: Timestamp whose allocations are undefined.
    """

    def __init__(self, timestamp: Any) -> None:
        self.timestamp = timestamp
        super().__init__(
            f"Degenerate allocation at {timestamp}: sum of zeroed scores is zero"
        )
