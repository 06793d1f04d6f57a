"""
Price and benchmark index providers package.
"""

from .yfinance_provider import YFinancePriceSource, YFinanceBenchmarkIndex
from .http_price_source import HttpPriceSource
from .static_provider import StaticPriceSource, StaticBenchmarkIndex

__all__ = [
    'YFinancePriceSource', 'YFinanceBenchmarkIndex', 'HttpPriceSource',
    'StaticPriceSource', 'StaticBenchmarkIndex'
]
