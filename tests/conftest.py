"""Shared fixtures for stratgraph tests."""

import pytest

from stratgraph.data import MockDataClient
from stratgraph.strategy import Strategy


def ref(name: str, value: str) -> dict:
    return {"name": name, "type": "Reference", "value": value}


def integer(name: str, value: int) -> dict:
    return {"name": name, "type": "Integer", "value": str(value)}


def decimal(name: str, value: float) -> dict:
    return {"name": name, "type": "Decimal", "value": str(value)}


def query(name: str = "price", field: str | None = "close") -> dict:
    operands = [] if field is None else [{"name": "field", "type": "Text", "value": field}]
    return {"name": name, "operation": "QUERY", "operands": operands}


def sma(name: str, source: str, window: int) -> dict:
    return {
        "name": name,
        "operation": "SMA",
        "operands": [ref("time_series", source), integer("window_size", window)],
    }


def binary(name: str, operation: str, left: str, right: str) -> dict:
    return {"name": name, "operation": operation, "operands": [ref("left", left), ref("right", right)]}


def scalar(name: str, operation: str, source: str, value: float) -> dict:
    return {
        "name": name,
        "operation": operation,
        "operands": [ref("time_series", source), decimal("scalar", value)],
    }


def make_strategy(calcs: list[dict], score: str, name: str = "test") -> Strategy:
    return Strategy.from_dict({"name": name, "score": {"calc": score}, "calcs": calcs})


@pytest.fixture
def gap_strategy_doc() -> dict:
    """Moving average gap: (sma50 - sma200) / sma50 on close prices."""
    return {
        "name": "SMA Gap",
        "score": {"calc": "sma_gap"},
        "calcs": [
            query("price"),
            sma("sma50", "price", 50),
            sma("sma200", "price", 200),
            binary("sma_diff", "TS_SUB", "sma50", "sma200"),
            binary("sma_gap", "TS_DIV", "sma_diff", "sma50"),
        ],
    }


@pytest.fixture
def gap_strategy(gap_strategy_doc: dict) -> Strategy:
    return Strategy.from_dict(gap_strategy_doc)


@pytest.fixture
def mock_client() -> MockDataClient:
    return MockDataClient()
