"""
Deterministic in-process price and benchmark sources.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Set

from domain.exceptions import PriceSourceError, UnknownBenchmarkError
from domain.value_objects import to_decimal
from infrastructure.interfaces import (
    BenchmarkIndexFactory, BenchmarkIndexSource, PriceSource, PriceSourceFactory
)


class StaticPriceSource(PriceSource):
    """Serves prices from an in-memory table."""

    def __init__(self, prices: Optional[Mapping[str, object]] = None):
        self._prices: Dict[str, Decimal] = {
            symbol: to_decimal(price) for symbol, price in (prices or {}).items()
        }
        self._failure: Optional[str] = None
        self.requests: List[Set[str]] = []

    def set_price(self, symbol: str, price) -> None:
        self._prices[symbol] = to_decimal(price)

    def remove_price(self, symbol: str) -> None:
        self._prices.pop(symbol, None)

    def fail_with(self, message: Optional[str]) -> None:
        """Make subsequent requests raise PriceSourceError (None to recover)."""
        self._failure = message

    def get_prices(self, symbols: Set[str]) -> Dict[str, Decimal]:
        self.requests.append(set(symbols))
        if self._failure:
            raise PriceSourceError(self._failure)
        return {symbol: self._prices[symbol] for symbol in symbols if symbol in self._prices}


class StaticBenchmarkIndex(BenchmarkIndexSource):
    """Serves fixed return series per benchmark symbol."""

    def __init__(self, series: Optional[Mapping[str, Iterable]] = None,
                 names: Optional[Mapping[str, str]] = None):
        self._series: Dict[str, List[Decimal]] = {
            symbol: [to_decimal(value) for value in values]
            for symbol, values in (series or {}).items()
        }
        self._names = dict(names or {})

    def set_returns(self, symbol: str, returns: Iterable) -> None:
        self._series[symbol] = [to_decimal(value) for value in returns]

    def available_benchmarks(self) -> List[str]:
        return sorted(self._series)

    def get_name(self, symbol: str) -> str:
        return self._names.get(symbol, symbol)

    def get_returns(self, symbol: str, days: int) -> List[Decimal]:
        if symbol not in self._series:
            raise UnknownBenchmarkError(symbol, self._series.keys())
        series = self._series[symbol]
        return list(series[-days:]) if days > 0 else list(series)


# Register the sources
PriceSourceFactory.register("static", StaticPriceSource)
BenchmarkIndexFactory.register("static", StaticBenchmarkIndex)
