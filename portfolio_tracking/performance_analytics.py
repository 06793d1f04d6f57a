"""
Performance analytics over a portfolio snapshot history.
"""

from typing import Dict, List, Optional, Sequence, Any
from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass

from domain.entities import PortfolioSnapshot
from domain.exceptions import InsufficientDataError
from domain.value_objects import to_decimal
from utils.logging import get_logger, performance_logging
from . import returns as rs

logger = get_logger(__name__)

PERFORMANCE_SCHEMA_VERSION = 1
SECONDS_PER_DAY = Decimal('86400')


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Return and risk-adjusted performance of a snapshot history.

    Returns, volatility, drawdown and win rate are decimal fractions;
    ``total_return_percentage`` is a percentage. ``profit_factor`` is
    infinite when there are gains and no losses.
    """
    start: datetime
    end: datetime
    observations: int
    period_days: Decimal

    # Return metrics
    total_return: Decimal
    total_return_percentage: Decimal
    annualized_return: Decimal
    average_return: Decimal

    # Risk metrics
    volatility: Decimal
    downside_deviation: Decimal
    max_drawdown: Decimal

    # Risk-adjusted returns
    sharpe_ratio: Decimal
    sortino_ratio: Decimal
    calmar_ratio: Decimal
    treynor_ratio: Decimal

    # Win/Loss metrics
    win_rate: Decimal
    profit_factor: Decimal

    # Benchmark-relative metrics
    beta: Decimal
    alpha: Decimal
    information_ratio: Decimal
    tracking_error: Decimal
    benchmark_return: Decimal

    risk_free_rate: Decimal
    schema_version: int = PERFORMANCE_SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'schema_version': self.schema_version,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'observations': self.observations,
            'period_days': float(self.period_days),
            'total_return': float(self.total_return),
            'total_return_percentage': float(self.total_return_percentage),
            'annualized_return': float(self.annualized_return),
            'average_return': float(self.average_return),
            'volatility': float(self.volatility),
            'downside_deviation': float(self.downside_deviation),
            'max_drawdown': float(self.max_drawdown),
            'sharpe_ratio': float(self.sharpe_ratio),
            'sortino_ratio': float(self.sortino_ratio),
            'calmar_ratio': float(self.calmar_ratio),
            'treynor_ratio': float(self.treynor_ratio),
            'win_rate': float(self.win_rate),
            'profit_factor': rs.to_float(self.profit_factor),
            'beta': float(self.beta),
            'alpha': float(self.alpha),
            'information_ratio': float(self.information_ratio),
            'tracking_error': float(self.tracking_error),
            'benchmark_return': float(self.benchmark_return),
            'risk_free_rate': float(self.risk_free_rate)
        }


def snapshot_values(snapshots: Sequence[PortfolioSnapshot]) -> List[Decimal]:
    return [snapshot.total_value.amount for snapshot in snapshots]


def elapsed_days(snapshots: Sequence[PortfolioSnapshot]) -> Decimal:
    span = snapshots[-1].timestamp - snapshots[0].timestamp
    return Decimal(str(span.total_seconds())) / SECONDS_PER_DAY


def require_history(snapshots: Sequence[PortfolioSnapshot], context: str) -> List[PortfolioSnapshot]:
    """Order snapshots by time and insist on at least two."""
    ordered = sorted(snapshots, key=lambda snapshot: snapshot.timestamp)
    if len(ordered) < 2:
        raise InsufficientDataError(required=2, available=len(ordered), context=context)
    return ordered


class PerformanceAnalyzer:
    """
    Stateless performance calculator.

    Identical inputs always give identical outputs, so one instance can be
    shared between threads.
    """

    @performance_logging()
    def compute(
        self,
        snapshots: Sequence[PortfolioSnapshot],
        risk_free_rate,
        benchmark_returns: Optional[Sequence] = None,
        period_days=None
    ) -> PerformanceMetrics:
        """
        Compute performance metrics.

        Args:
            snapshots: Snapshot history (any order, at least two)
            risk_free_rate: Annual risk-free rate as a fraction
            benchmark_returns: Per-period benchmark returns, oldest first
            period_days: Days used for annualization; defaults to the
                elapsed time between first and last snapshot

        Raises:
            InsufficientDataError: fewer than two snapshots
        """
        ordered = require_history(snapshots, "performance metrics")
        rf = to_decimal(risk_free_rate)
        values = snapshot_values(ordered)
        period_returns = rs.period_returns(values)

        days = to_decimal(period_days) if period_days is not None else elapsed_days(ordered)
        days = max(days, rs.ONE)

        total = rs.total_return(values)
        annualized = rs.annualize(total, days)
        volatility = rs.pstdev(period_returns) * rs.SQRT_PERIODS

        sharpe = (annualized - rf) / volatility if volatility > 0 else rs.ZERO

        daily_rf = rf / rs.PERIODS_PER_YEAR
        downside = rs.downside_deviation(period_returns, daily_rf)
        sortino = (annualized - rf) / (downside * rs.SQRT_PERIODS) if downside > 0 else rs.ZERO

        drawdown = rs.max_drawdown(values)
        calmar = annualized / abs(drawdown) if drawdown != 0 else rs.ZERO

        win_rate, profit_factor = self._win_loss(period_returns)

        portfolio_aligned, benchmark_aligned = rs.align(
            period_returns, [to_decimal(value) for value in (benchmark_returns or [])]
        )
        beta = rs.beta(portfolio_aligned, benchmark_aligned)
        benchmark_total = rs.compound(benchmark_aligned)
        alpha = total - (rf + beta * (benchmark_total - rf))
        treynor = (annualized - rf) / beta if beta != 0 else rs.ZERO

        excess = [p - b for p, b in zip(portfolio_aligned, benchmark_aligned)]
        tracking_error = rs.pstdev(excess)
        information_ratio = rs.mean(excess) / tracking_error if tracking_error > 0 else rs.ZERO

        metrics = PerformanceMetrics(
            start=ordered[0].timestamp,
            end=ordered[-1].timestamp,
            observations=len(ordered),
            period_days=days,
            total_return=total,
            total_return_percentage=total * 100,
            annualized_return=annualized,
            average_return=rs.mean(period_returns),
            volatility=volatility,
            downside_deviation=downside,
            max_drawdown=drawdown,
            sharpe_ratio=sharpe,
            sortino_ratio=sortino,
            calmar_ratio=calmar,
            treynor_ratio=treynor,
            win_rate=win_rate,
            profit_factor=profit_factor,
            beta=beta,
            alpha=alpha,
            information_ratio=information_ratio,
            tracking_error=tracking_error,
            benchmark_return=benchmark_total,
            risk_free_rate=rf
        )

        logger.debug(
            f"Performance over {len(ordered)} snapshots: total {total:.4f}, "
            f"sharpe {sharpe:.4f}, max drawdown {drawdown:.4f}"
        )
        return metrics

    @staticmethod
    def _win_loss(period_returns: Sequence[Decimal]):
        if not period_returns:
            return rs.ZERO, rs.ZERO

        gains = [r for r in period_returns if r > 0]
        losses = [r for r in period_returns if r < 0]
        win_rate = Decimal(len(gains)) / len(period_returns)

        gross_gain = sum(gains, rs.ZERO)
        gross_loss = abs(sum(losses, rs.ZERO))
        if gross_loss > 0:
            profit_factor = gross_gain / gross_loss
        elif gross_gain > 0:
            profit_factor = Decimal('Infinity')
        else:
            profit_factor = rs.ZERO

        return win_rate, profit_factor
