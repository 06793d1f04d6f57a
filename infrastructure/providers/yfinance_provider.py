"""
Yahoo Finance price and benchmark index sources.
"""

from typing import Dict, List, Optional, Set
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pandas as pd
import yfinance as yf

from domain.exceptions import PriceSourceError, UnknownBenchmarkError
from domain.value_objects import to_decimal
from infrastructure.interfaces import (
    BenchmarkIndexFactory, BenchmarkIndexSource, PriceSource, PriceSourceFactory
)
from utils.logging import get_logger

logger = get_logger(__name__)


def _close_frame(data: pd.DataFrame, tickers: List[str]) -> pd.DataFrame:
    """Extract close prices with one column per ticker."""
    if data is None or data.empty:
        return pd.DataFrame()

    if isinstance(data.columns, pd.MultiIndex):
        closes = data["Close"]
    else:
        closes = data["Close"].to_frame(name=tickers[0])

    if isinstance(closes, pd.Series):
        closes = closes.to_frame(name=tickers[0])
    return closes


class YFinancePriceSource(PriceSource):
    """Current prices from the latest Yahoo Finance daily close."""

    def __init__(self, tickers: Optional[Dict[str, str]] = None, timeout: float = 10.0,
                 quote_suffix: str = "-USD"):
        """
        Initialize the source.

        Args:
            tickers: Asset symbol to Yahoo ticker map (e.g. ``SOL`` -> ``SOL-USD``)
            timeout: Per-request timeout in seconds
            quote_suffix: Suffix appended to unmapped symbols
        """
        self.tickers = dict(tickers or {})
        self.timeout = timeout
        self.quote_suffix = quote_suffix

        logger.info(f"YFinancePriceSource initialized with {len(self.tickers)} mapped tickers")

    def ticker_for(self, symbol: str) -> str:
        return self.tickers.get(symbol, f"{symbol.upper()}{self.quote_suffix}")

    def get_prices(self, symbols: Set[str]) -> Dict[str, Decimal]:
        if not symbols:
            return {}

        by_ticker = {self.ticker_for(symbol): symbol for symbol in sorted(symbols)}
        tickers = list(by_ticker)

        try:
            data = yf.download(
                tickers=tickers,
                period="5d",
                interval="1d",
                auto_adjust=True,
                progress=False,
                threads=False,
                timeout=self.timeout
            )
        except Exception as e:
            raise PriceSourceError(
                f"Yahoo Finance request failed: {e}", metadata={'tickers': tickers}
            ) from e

        closes = _close_frame(data, tickers)
        prices: Dict[str, Decimal] = {}

        for ticker, symbol in by_ticker.items():
            if ticker not in closes.columns:
                continue
            series = closes[ticker].dropna()
            if series.empty:
                continue
            prices[symbol] = to_decimal(float(series.iloc[-1]))

        missing = set(symbols) - set(prices)
        if missing:
            logger.warning(f"No Yahoo Finance quote for: {', '.join(sorted(missing))}")

        logger.debug(f"Retrieved {len(prices)} prices from Yahoo Finance")
        return prices


class YFinanceBenchmarkIndex(BenchmarkIndexSource):
    """Benchmark returns from daily closes of a registered Yahoo ticker."""

    def __init__(self, tickers: Dict[str, str], names: Optional[Dict[str, str]] = None,
                 timeout: float = 10.0):
        self.tickers = dict(tickers)
        self.names = dict(names or {})
        self.timeout = timeout

    def available_benchmarks(self) -> List[str]:
        return sorted(self.tickers)

    def get_name(self, symbol: str) -> str:
        return self.names.get(symbol, symbol)

    def get_returns(self, symbol: str, days: int) -> List[Decimal]:
        if symbol not in self.tickers:
            raise UnknownBenchmarkError(symbol, self.tickers.keys())

        ticker = self.tickers[symbol]
        end = datetime.now(timezone.utc)
        # One extra close so that ``days`` returns can be formed
        start = end - timedelta(days=days + 1)

        try:
            data = yf.download(
                tickers=[ticker],
                start=start.date().isoformat(),
                end=(end + timedelta(days=1)).date().isoformat(),
                interval="1d",
                auto_adjust=True,
                progress=False,
                threads=False,
                timeout=self.timeout
            )
        except Exception as e:
            raise PriceSourceError(
                f"Yahoo Finance request failed for {ticker}: {e}", metadata={'ticker': ticker}
            ) from e

        closes = _close_frame(data, [ticker])
        if ticker not in closes.columns:
            logger.warning(f"No benchmark data found for {symbol} ({ticker})")
            return []

        changes = closes[ticker].dropna().pct_change().dropna()
        returns = [to_decimal(float(value)) for value in changes.tolist()]

        logger.info(f"Retrieved {len(returns)} benchmark returns for {symbol}")
        return returns[-days:] if days > 0 else returns


# Register the sources
PriceSourceFactory.register("yfinance", YFinancePriceSource)
BenchmarkIndexFactory.register("yfinance", YFinanceBenchmarkIndex)
