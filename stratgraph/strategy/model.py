"""Strategy data model.

A strategy is a flat list of named calculations plus the name of the one
calculation whose output is the asset score. Instances are immutable and
treated as read-only configuration for the life of a run.

Document shape (as produced by ``load_strategy`` from YAML)::

    name: Example Strategy
    score:
      calc: sma_gap
    calcs:
      - name: sma50
        operation: SMA
        operands:
          - {name: time_series, type: Reference, value: price}
          - {name: window_size, type: Integer, value: "50"}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..exceptions import InvalidStrategyError, OperandTypeError


class Operation(str, Enum):
    """Closed set of calculation operations."""

    QUERY = "QUERY"
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    TS_ADD = "TS_ADD"
    TS_SUB = "TS_SUB"
    TS_MUL = "TS_MUL"
    TS_DIV = "TS_DIV"
    SMA = "SMA"


SCALAR_OPERATIONS = frozenset({Operation.ADD, Operation.SUB, Operation.MUL, Operation.DIV})
SERIES_OPERATIONS = frozenset(
    {Operation.TS_ADD, Operation.TS_SUB, Operation.TS_MUL, Operation.TS_DIV}
)


class OperandType(str, Enum):
    """Declared type of an operand literal."""

    TEXT = "Text"
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    REFERENCE = "Reference"


@dataclass(frozen=True)
class Operand:
    """Typed, named input to a calculation.

    Attributes
    ----------
    name : str
        Role of the operand ("left", "right", "time_series", "window_size",
        "scalar", "field").
    type : OperandType
        Declared literal type.
    value : str | None
        Literal text, or the referenced calculation name. None only for a
        Reference that denotes an external field.
    """

    name: str
    type: OperandType
    value: str | None = None

    @classmethod
    def from_dict(cls, calculation: str, doc: Mapping[str, Any]) -> Operand:
        name = doc.get("name")
        if not name:
            raise OperandTypeError(calculation, "<unnamed>", "operand name is required")
        raw_type = doc.get("type")
        try:
            operand_type = OperandType(raw_type)
        except ValueError:
            raise OperandTypeError(
                calculation, name, f"unknown operand type {raw_type!r}"
            ) from None
        value = doc.get("value")
        return cls(name=name, type=operand_type, value=None if value is None else str(value))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.value is not None:
            out["value"] = self.value
        return out


@dataclass(frozen=True)
class Calculation:
    """One named node of a strategy."""

    name: str
    operation: Operation
    operands: tuple[Operand, ...] = ()

    def operand(self, role: str) -> Operand | None:
        """First operand with the given role, or None."""
        for operand in self.operands:
            if operand.name == role:
                return operand
        return None

    def references(self) -> list[str]:
        """Values of all Reference operands, in declaration order."""
        return [
            o.value
            for o in self.operands
            if o.type is OperandType.REFERENCE and o.value is not None
        ]

    @classmethod
    def from_dict(cls, doc: Mapping[str, Any]) -> Calculation:
        name = doc.get("name")
        if not name:
            raise InvalidStrategyError("<unknown>", "calculation without a name")
        raw_operation = doc.get("operation")
        try:
            operation = Operation(str(raw_operation).upper())
        except ValueError:
            raise InvalidStrategyError(
                "<unknown>", f"calculation '{name}' has unknown operation {raw_operation!r}"
            ) from None
        operands = tuple(Operand.from_dict(name, o) for o in doc.get("operands") or [])
        return cls(name=name, operation=operation, operands=operands)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "operation": self.operation.value,
            "operands": [o.to_dict() for o in self.operands],
        }


@dataclass(frozen=True)
class Strategy:
    """Named set of calculations rooted at ``score``."""

    name: str
    score: str
    calculations: tuple[Calculation, ...] = field(default_factory=tuple)

    def calculation(self, name: str) -> Calculation | None:
        for calc in self.calculations:
            if calc.name == name:
                return calc
        return None

    @classmethod
    def from_dict(cls, doc: Mapping[str, Any]) -> Strategy:
        """
        Build a strategy from a parsed document.

        Parameters
        ----------
        doc : Mapping[str, Any]
            Mapping with ``name``, ``score.calc`` and ``calcs``.

        Returns
        -------
        Strategy

        Raises
        ------
        InvalidStrategyError
            If a required key is missing or an operation is unknown.
        OperandTypeError
            If an operand declares an unknown type.
        """
        name = doc.get("name")
        if not name:
            raise InvalidStrategyError("<unknown>", "strategy name is required")

        score = doc.get("score")
        score_calc = score.get("calc") if isinstance(score, Mapping) else None
        if not score_calc:
            raise InvalidStrategyError(name, "score.calc is required")

        calcs = doc.get("calcs")
        if not isinstance(calcs, list):
            raise InvalidStrategyError(name, "calcs must be a list")

        try:
            calculations = tuple(Calculation.from_dict(c) for c in calcs)
        except InvalidStrategyError as exc:
            raise InvalidStrategyError(name, exc.reason) from None

        return cls(name=name, score=score_calc, calculations=calculations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": {"calc": self.score},
            "calcs": [c.to_dict() for c in self.calculations],
        }
