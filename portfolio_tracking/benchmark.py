"""
Benchmark comparison of portfolio returns against a market index.
"""

from typing import Callable, Dict, List, Optional, Sequence, Any
from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass

from domain.entities import PortfolioSnapshot
from domain.exceptions import UnknownBenchmarkError
from domain.value_objects import to_decimal
from infrastructure.interfaces import BenchmarkIndexSource
from utils.logging import get_logger, performance_logging
from . import returns as rs
from .performance_analytics import require_history, snapshot_values

logger = get_logger(__name__)

BENCHMARK_SCHEMA_VERSION = 1

HistoryProvider = Callable[[str, int], Sequence[PortfolioSnapshot]]


@dataclass(frozen=True)
class BenchmarkComparison:
    """Comparison against a benchmark over aligned periods."""
    benchmark_symbol: str
    benchmark_name: str
    start: datetime
    end: datetime
    periods: int

    portfolio_return: Decimal
    benchmark_return: Decimal
    outperformance: Decimal

    beta: Decimal
    alpha: Decimal
    correlation: Decimal
    tracking_error: Decimal
    information_ratio: Decimal

    up_capture: Decimal
    down_capture: Decimal

    schema_version: int = BENCHMARK_SCHEMA_VERSION

    def relative_performance(self) -> str:
        """Get relative performance description."""
        if self.outperformance > Decimal('0.05'):
            return "Significantly outperforming"
        elif self.outperformance > Decimal('0.01'):
            return "Outperforming"
        elif self.outperformance > Decimal('-0.01'):
            return "Matching"
        elif self.outperformance > Decimal('-0.05'):
            return "Underperforming"
        else:
            return "Significantly underperforming"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'schema_version': self.schema_version,
            'benchmark_symbol': self.benchmark_symbol,
            'benchmark_name': self.benchmark_name,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'periods': self.periods,
            'portfolio_return': float(self.portfolio_return),
            'benchmark_return': float(self.benchmark_return),
            'outperformance': float(self.outperformance),
            'beta': float(self.beta),
            'alpha': float(self.alpha),
            'correlation': float(self.correlation),
            'tracking_error': float(self.tracking_error),
            'information_ratio': float(self.information_ratio),
            'up_capture': float(self.up_capture),
            'down_capture': float(self.down_capture),
            'relative_performance': self.relative_performance()
        }


def compare_series(
    benchmark_symbol: str,
    portfolio_returns: Sequence,
    benchmark_returns: Sequence,
    risk_free_rate,
    start: datetime,
    end: datetime,
    benchmark_name: Optional[str] = None
) -> BenchmarkComparison:
    """
    Compare two per-period return series.

    The series are aligned on their most recent common periods and both
    totals are compounded over that window.
    """
    rf = to_decimal(risk_free_rate)
    portfolio = [to_decimal(value) for value in portfolio_returns]
    benchmark = [to_decimal(value) for value in benchmark_returns]

    portfolio_aligned, benchmark_aligned = rs.align(portfolio, benchmark)
    if not benchmark_aligned:
        logger.warning(f"No benchmark returns for {benchmark_symbol}; comparing against a flat index")
        portfolio_aligned = portfolio

    portfolio_total = rs.compound(portfolio_aligned)
    benchmark_total = rs.compound(benchmark_aligned)

    beta = rs.beta(portfolio_aligned, benchmark_aligned)
    alpha = portfolio_total - (rf + beta * (benchmark_total - rf))

    excess = [p - b for p, b in zip(portfolio_aligned, benchmark_aligned)]
    tracking_error = rs.pstdev(excess)
    information_ratio = rs.mean(excess) / tracking_error if tracking_error > 0 else rs.ZERO
    up_capture, down_capture = rs.capture_ratios(portfolio_aligned, benchmark_aligned)

    return BenchmarkComparison(
        benchmark_symbol=benchmark_symbol,
        benchmark_name=benchmark_name or benchmark_symbol,
        start=start,
        end=end,
        periods=len(benchmark_aligned),
        portfolio_return=portfolio_total,
        benchmark_return=benchmark_total,
        outperformance=portfolio_total - benchmark_total,
        beta=beta,
        alpha=alpha,
        correlation=rs.correlation(portfolio_aligned, benchmark_aligned),
        tracking_error=tracking_error,
        information_ratio=information_ratio,
        up_capture=up_capture,
        down_capture=down_capture
    )


class BenchmarkComparator:
    """Binds the pure comparison to a snapshot history and an index source."""

    def __init__(self, history_provider: HistoryProvider, index_source: BenchmarkIndexSource,
                 risk_free_rate=Decimal('0.05')):
        self.history_provider = history_provider
        self.index_source = index_source
        self.risk_free_rate = to_decimal(risk_free_rate)

    def available_benchmarks(self) -> List[str]:
        return self.index_source.available_benchmarks()

    @performance_logging()
    def compare(self, user_id: str, benchmark_symbol: str, window_days: int) -> BenchmarkComparison:
        """
        Compare a user's portfolio with a registered benchmark.

        Raises:
            UnknownBenchmarkError: symbol not registered
            InsufficientDataError: fewer than two snapshots in the window
        """
        available = self.available_benchmarks()
        if benchmark_symbol not in available:
            raise UnknownBenchmarkError(benchmark_symbol, available)

        snapshots = require_history(
            self.history_provider(user_id, window_days), "benchmark comparison"
        )
        portfolio_returns = rs.period_returns(snapshot_values(snapshots))
        benchmark_returns = self.index_source.get_returns(benchmark_symbol, window_days)

        comparison = compare_series(
            benchmark_symbol,
            portfolio_returns,
            benchmark_returns,
            self.risk_free_rate,
            start=snapshots[0].timestamp,
            end=snapshots[-1].timestamp,
            benchmark_name=self.index_source.get_name(benchmark_symbol)
        )

        logger.info(
            f"{user_id} vs {benchmark_symbol}: {comparison.relative_performance()} "
            f"({comparison.outperformance:+.4f})"
        )
        return comparison
