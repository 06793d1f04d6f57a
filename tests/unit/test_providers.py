"""
Unit tests for price and benchmark sources.
"""

import pytest
import pandas as pd
import requests
from decimal import Decimal

from domain.exceptions import PriceSourceError, UnknownBenchmarkError
from infrastructure.interfaces import BenchmarkIndexFactory, PriceSourceFactory
from infrastructure.providers import (
    HttpPriceSource, StaticBenchmarkIndex, StaticPriceSource,
    YFinanceBenchmarkIndex, YFinancePriceSource
)
from infrastructure.providers import yfinance_provider


def multi_close_frame(closes):
    """Frame shaped like a multi-ticker ``yf.download`` result."""
    index = pd.date_range("2024-01-01", periods=len(next(iter(closes.values()))), freq="D")
    columns = pd.MultiIndex.from_tuples(
        [(field, ticker) for field in ("Close", "Open") for ticker in closes]
    )
    data = [
        [closes[ticker][i] for field in ("Close", "Open") for ticker in closes]
        for i in range(len(index))
    ]
    return pd.DataFrame(data, index=index, columns=columns)


class TestFactories:

    def test_sources_registered(self):
        assert {"yfinance", "http", "static"} <= set(PriceSourceFactory.list_sources())
        assert {"yfinance", "static"} <= set(BenchmarkIndexFactory.list_indices())

    def test_create_static(self):
        source = PriceSourceFactory.create("static", prices={"SOL": 100})
        assert isinstance(source, StaticPriceSource)
        assert source.get_prices({"SOL"}) == {"SOL": Decimal("100")}

    def test_unknown_source(self):
        with pytest.raises(ValueError, match="Unknown price source"):
            PriceSourceFactory.create("carrier-pigeon")


class TestStaticSources:

    def test_missing_symbols_omitted(self, price_source):
        assert price_source.get_prices({"SOL", "SAMO"}) == {"SOL": Decimal("100")}

    def test_failure_mode(self, price_source):
        price_source.fail_with("offline")
        with pytest.raises(PriceSourceError, match="offline"):
            price_source.get_prices({"SOL"})
        price_source.fail_with(None)
        assert price_source.get_prices({"SOL"}) == {"SOL": Decimal("100")}

    def test_benchmark_window(self, benchmark_index):
        assert benchmark_index.get_returns("CRYPTO_INDEX", 2) == [Decimal("0.01"), Decimal("-0.01")]
        assert benchmark_index.is_registered("SOL")
        assert not benchmark_index.is_registered("SPY")
        with pytest.raises(UnknownBenchmarkError):
            StaticBenchmarkIndex().get_returns("SPY", 30)


class TestYFinancePriceSource:

    def test_latest_close_per_symbol(self, monkeypatch):
        calls = []

        def fake_download(**kwargs):
            calls.append(kwargs)
            return multi_close_frame({
                "SOL-USD": [98.0, 101.5, float("nan")],
                "RAY-USD": [1.9, 2.1, 2.25],
            })

        monkeypatch.setattr(yfinance_provider.yf, "download", fake_download)
        source = YFinancePriceSource(tickers={"SOL": "SOL-USD"})

        prices = source.get_prices({"SOL", "RAY", "SAMO"})

        assert prices == {"SOL": Decimal("101.5"), "RAY": Decimal("2.25")}
        assert len(calls) == 1
        assert sorted(calls[0]['tickers']) == ["RAY-USD", "SAMO-USD", "SOL-USD"]

    def test_single_ticker_frame(self, monkeypatch):
        frame = pd.DataFrame({"Close": [99.0, 100.0], "Open": [98.0, 99.0]})
        monkeypatch.setattr(yfinance_provider.yf, "download", lambda **kwargs: frame)

        assert YFinancePriceSource().get_prices({"SOL"}) == {"SOL": Decimal("100.0")}

    def test_empty_download(self, monkeypatch):
        monkeypatch.setattr(yfinance_provider.yf, "download", lambda **kwargs: pd.DataFrame())
        assert YFinancePriceSource().get_prices({"SOL"}) == {}

    def test_download_error_is_price_source_error(self, monkeypatch):
        def broken(**kwargs):
            raise ConnectionError("no route to host")

        monkeypatch.setattr(yfinance_provider.yf, "download", broken)
        with pytest.raises(PriceSourceError, match="no route to host"):
            YFinancePriceSource().get_prices({"SOL"})

    def test_no_symbols_no_request(self, monkeypatch):
        def fail(**kwargs):
            raise AssertionError("unexpected download")

        monkeypatch.setattr(yfinance_provider.yf, "download", fail)
        assert YFinancePriceSource().get_prices(set()) == {}


class TestYFinanceBenchmarkIndex:

    def test_returns_from_closes(self, monkeypatch):
        monkeypatch.setattr(
            yfinance_provider.yf, "download",
            lambda **kwargs: multi_close_frame({"BTC-USD": [100.0, 110.0, 99.0]})
        )
        index = YFinanceBenchmarkIndex({"CRYPTO_INDEX": "BTC-USD"}, {"CRYPTO_INDEX": "Crypto"})

        returns = index.get_returns("CRYPTO_INDEX", 30)

        assert [float(r) for r in returns] == pytest.approx([0.1, -0.1])
        assert index.get_returns("CRYPTO_INDEX", 1) == returns[-1:]
        assert index.get_name("CRYPTO_INDEX") == "Crypto"
        assert index.available_benchmarks() == ["CRYPTO_INDEX"]

    def test_unknown_symbol(self):
        with pytest.raises(UnknownBenchmarkError):
            YFinanceBenchmarkIndex({"SPY": "SPY"}).get_returns("NASDAQ", 30)


class FakeResponse:

    def __init__(self, payload=None, status=200, invalid_json=False):
        self.payload = payload
        self.status = status
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Server Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:

    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.error:
            raise self.error
        return self.response


class TestHttpPriceSource:

    def test_batched_request(self):
        session = FakeSession(FakeResponse({"SOL": 101.25, "RAY": "2.5"}))
        source = HttpPriceSource("https://quotes.test/v1", timeout=3, session=session)

        prices = source.get_prices({"SOL", "RAY", "SAMO"})

        assert prices == {"SOL": Decimal("101.25"), "RAY": Decimal("2.5")}
        assert session.calls == [("https://quotes.test/v1", {"symbols": "RAY,SAMO,SOL"}, 3)]

    def test_nested_quotes(self):
        payload = {"prices": {"SOL": {"price": 99}, "USDC": {"usd": "1.0"}, "RAY": {"price": -1}}}
        source = HttpPriceSource("https://quotes.test", session=FakeSession(FakeResponse(payload)))

        assert source.get_prices({"SOL", "USDC", "RAY"}) == {
            "SOL": Decimal("99"), "USDC": Decimal("1.0")
        }

    def test_malformed_quote_ignored(self):
        session = FakeSession(FakeResponse({"SOL": "n/a", "RAY": 2}))
        source = HttpPriceSource("https://quotes.test", session=session)
        assert source.get_prices({"SOL", "RAY"}) == {"RAY": Decimal("2")}

    @pytest.mark.parametrize("session, message", [
        (FakeSession(error=requests.Timeout()), "timed out"),
        (FakeSession(error=requests.ConnectionError("refused")), "refused"),
        (FakeSession(FakeResponse(status=503)), "503"),
        (FakeSession(FakeResponse(invalid_json=True)), "not valid JSON"),
    ])
    def test_failures_become_price_source_errors(self, session, message):
        source = HttpPriceSource("https://quotes.test", session=session)
        with pytest.raises(PriceSourceError, match=message):
            source.get_prices({"SOL"})

    def test_api_key_header(self):
        session = FakeSession()
        HttpPriceSource("https://quotes.test", api_key="secret", session=session)
        assert session.headers == {"Authorization": "Bearer secret"}

    def test_requires_url(self):
        with pytest.raises(ValueError):
            HttpPriceSource("")
