"""
Return-series statistics shared by the analyzers.

All figures are Decimal fractions (0.05 == 5%). Deviations are population
deviations.
"""

from typing import List, Sequence, Tuple
from decimal import Decimal, ROUND_FLOOR
import math
import statistics

ZERO = Decimal('0')
ONE = Decimal('1')
PERIODS_PER_YEAR = 365
SQRT_PERIODS = Decimal(PERIODS_PER_YEAR).sqrt()


def period_returns(values: Sequence[Decimal]) -> List[Decimal]:
    """Simple returns between consecutive values; periods starting at 0 are skipped."""
    returns = []
    for previous, current in zip(values, values[1:]):
        if previous == 0:
            continue
        returns.append((current - previous) / previous)
    return returns


def total_return(values: Sequence[Decimal]) -> Decimal:
    if len(values) < 2 or values[0] == 0:
        return ZERO
    return (values[-1] - values[0]) / values[0]


def annualize(total: Decimal, days) -> Decimal:
    """Compound a total return over ``days`` up to one year."""
    days = max(Decimal(str(days)), ONE)
    growth = ONE + total
    if growth <= 0:
        return -ONE
    return growth ** (Decimal(PERIODS_PER_YEAR) / days) - ONE


def compound(returns: Sequence[Decimal]) -> Decimal:
    growth = ONE
    for value in returns:
        growth *= ONE + value
    return growth - ONE


def mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / len(values)


def pstdev(values: Sequence[Decimal]) -> Decimal:
    if len(values) < 2:
        return ZERO
    return statistics.pstdev(values)


def covariance(first: Sequence[Decimal], second: Sequence[Decimal]) -> Decimal:
    if len(first) != len(second) or len(first) < 2:
        return ZERO
    first_mean = mean(first)
    second_mean = mean(second)
    return sum(
        ((a - first_mean) * (b - second_mean) for a, b in zip(first, second)), ZERO
    ) / len(first)


def beta(portfolio: Sequence[Decimal], benchmark: Sequence[Decimal]) -> Decimal:
    """Cov(p, b) / Var(b); 0 when the benchmark does not move."""
    variance = covariance(benchmark, benchmark)
    if variance == 0:
        return ZERO
    return covariance(portfolio, benchmark) / variance


def correlation(first: Sequence[Decimal], second: Sequence[Decimal]) -> Decimal:
    denominator = pstdev(first) * pstdev(second)
    if denominator == 0 or len(first) != len(second):
        return ZERO
    return covariance(first, second) / denominator


def align(portfolio: Sequence[Decimal], benchmark: Sequence[Decimal]) -> Tuple[List[Decimal], List[Decimal]]:
    """Keep the most recent periods the two series have in common."""
    length = min(len(portfolio), len(benchmark))
    if length == 0:
        return [], []
    return list(portfolio[-length:]), list(benchmark[-length:])


def max_drawdown(values: Sequence[Decimal]) -> Decimal:
    """Largest peak-to-trough decline as a fraction of the peak."""
    peak = None
    worst = ZERO
    for value in values:
        if peak is None or value > peak:
            peak = value
        if peak > 0:
            worst = max(worst, (peak - value) / peak)
    return worst


def downside_deviation(returns: Sequence[Decimal], target: Decimal = ZERO) -> Decimal:
    """Root-mean-square of returns below ``target``, measured from it."""
    shortfalls = [value - target for value in returns if value < target]
    if not shortfalls:
        return ZERO
    return (sum((s * s for s in shortfalls), ZERO) / len(shortfalls)).sqrt()


def capture_ratios(portfolio: Sequence[Decimal], benchmark: Sequence[Decimal]) -> Tuple[Decimal, Decimal]:
    """
    Up and down capture of aligned series.

    Up capture averages portfolio returns over periods where the benchmark
    rose, divided by the benchmark's average over the same periods; down
    capture does the same for falling periods. Each is 0 when the benchmark
    has no such periods.
    """
    up_portfolio, up_benchmark = [], []
    down_portfolio, down_benchmark = [], []

    for p, b in zip(portfolio, benchmark):
        if b > 0:
            up_portfolio.append(p)
            up_benchmark.append(b)
        elif b < 0:
            down_portfolio.append(p)
            down_benchmark.append(b)

    up_capture = mean(up_portfolio) / mean(up_benchmark) if up_benchmark else ZERO
    down_capture = mean(down_portfolio) / mean(down_benchmark) if down_benchmark else ZERO
    return up_capture, down_capture


def value_at_risk(returns: Sequence[Decimal], confidence) -> Decimal:
    """
    Historical VaR: the return at index floor((1 - confidence) * n) of the
    ascending series. Negative values are losses.
    """
    if not returns:
        return ZERO
    ordered = sorted(returns)
    tail = (ONE - Decimal(str(confidence))) * len(ordered)
    index = int(tail.to_integral_value(rounding=ROUND_FLOOR))
    return ordered[min(max(index, 0), len(ordered) - 1)]


def conditional_value_at_risk(returns: Sequence[Decimal], confidence) -> Decimal:
    """Mean of the returns at or below the VaR threshold."""
    threshold = value_at_risk(returns, confidence)
    tail = [value for value in returns if value <= threshold]
    return mean(tail)


def to_float(value: Decimal) -> float:
    """JSON-friendly float; infinities become None."""
    number = float(value)
    return number if math.isfinite(number) else None
