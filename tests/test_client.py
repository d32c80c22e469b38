"""Tests for market data clients."""

import numpy as np
import pandas as pd
import pytest

from conftest import binary, make_strategy, query
from stratgraph.data import (
    CLOSE,
    RELATIVE_PRICE_CHANGE,
    Asset,
    DataClient,
    FrameDataClient,
    MockDataClient,
    simulate_prices,
)
from stratgraph.exceptions import AssetNotFoundError
from stratgraph.strategy import CalculationEvaluator, build_graph


@pytest.fixture
def client() -> FrameDataClient:
    dates = pd.date_range("2023-01-01", periods=4)
    prices = pd.DataFrame({"A": [100.0, 110.0, 99.0, 99.0], "B": [10.0, 10.0, 20.0, 10.0]}, index=dates)
    volume = pd.DataFrame({"A": [1.0, 2.0, 3.0, 4.0]}, index=dates)
    return FrameDataClient(prices, fields={"volume": volume})


class TestFrameDataClient:
    """Tests for FrameDataClient."""

    def test_satisfies_protocol(self, client: FrameDataClient) -> None:
        """Test the client implements DataClient."""
        assert isinstance(client, DataClient)

    def test_assets(self, client: FrameDataClient) -> None:
        """Test the universe is keyed by symbol."""
        assert client.assets() == {"A": Asset("A"), "B": Asset("B")}
        assert client.asset("B") == Asset("B")

    def test_unknown_asset(self, client: FrameDataClient) -> None:
        """Test unknown symbols raise AssetNotFoundError."""
        with pytest.raises(AssetNotFoundError, match="ZZZ"):
            client.asset("ZZZ")
        with pytest.raises(KeyError):
            client.query(Asset("ZZZ"), "2023-01-04")

    def test_query_is_as_of(self, client: FrameDataClient) -> None:
        """Test queries never return points after the as-of timestamp."""
        series = client.query(client.asset("A"), "2023-01-02")

        assert series.values.tolist() == [100.0, 110.0]
        assert series.last_timestamp() == pd.Timestamp("2023-01-02")

    def test_default_field_is_close(self, client: FrameDataClient) -> None:
        """Test a query without field returns close prices."""
        asset = client.asset("A")

        assert client.query(asset, "2023-01-04") == client.query(asset, "2023-01-04", CLOSE)

    def test_relative_price_change(self, client: FrameDataClient) -> None:
        """Test relative price change is p_t / p_{t-1} - 1."""
        series = client.query(client.asset("B"), "2023-01-04", RELATIVE_PRICE_CHANGE)

        assert series.index[0] == pd.Timestamp("2023-01-02")
        np.testing.assert_allclose(series.values, [0.0, 1.0, -0.5])

    def test_extra_field(self, client: FrameDataClient) -> None:
        """Test additional fields are served."""
        series = client.query(client.asset("A"), "2023-01-03", "volume")

        assert series.values.tolist() == [1.0, 2.0, 3.0]
        assert client.fields == [CLOSE, RELATIVE_PRICE_CHANGE, "volume"]

    def test_extra_field_from_parsed_dates(self) -> None:
        """Test a field frame indexed by parsed date strings combines with close."""
        prices = pd.DataFrame({"A": [10.0, 11.0, 12.0]}, index=pd.date_range("2023-01-01", periods=3))
        dates = pd.to_datetime(["2023-01-01", "2023-01-02", "2023-01-03"]).as_unit("us")
        volume = pd.DataFrame({"A": [100.0, 200.0, 300.0]}, index=dates)
        client = FrameDataClient(prices, fields={"volume": volume})
        strategy = make_strategy(
            [
                query("price"),
                query("volume", field="volume"),
                binary("notional", "TS_MUL", "price", "volume"),
            ],
            "notional",
        )

        result = CalculationEvaluator(build_graph(strategy), client).evaluate(
            client.asset("A"), "2023-01-03"
        )

        assert result.score.values.tolist() == [1000.0, 2200.0, 3600.0]
        assert result.score.index.equals(prices.index)

    def test_unknown_field(self, client: FrameDataClient) -> None:
        """Test unknown fields raise KeyError."""
        with pytest.raises(KeyError, match="unknown_field"):
            client.query(client.asset("A"), "2023-01-04", "unknown_field")

    def test_field_without_symbol(self, client: FrameDataClient) -> None:
        """Test a field lacking the asset's column raises KeyError."""
        with pytest.raises(KeyError):
            client.query(client.asset("B"), "2023-01-04", "volume")


class TestSimulation:
    """Tests for the simulated market."""

    def test_shape(self) -> None:
        """Test simulated prices have three assets on a daily index."""
        prices = simulate_prices(100)

        assert list(prices.columns) == ["A", "B", "C"]
        assert len(prices) == 100
        assert prices.index[0] == pd.Timestamp("2010-01-01")
        assert (prices > 0).all().all()

    def test_deterministic(self) -> None:
        """Test repeated calls give identical prices."""
        pd.testing.assert_frame_equal(simulate_prices(50), simulate_prices(50))

    def test_too_short(self) -> None:
        """Test at least two points are required."""
        with pytest.raises(ValueError):
            simulate_prices(1)

    def test_mock_client_today(self) -> None:
        """Test the mock client exposes its last date."""
        client = MockDataClient(n=10)

        assert client.today == pd.Timestamp("2010-01-10")
        assert len(client.query(client.asset("C"), client.today)) == 10
