"""
Unit tests for performance analytics and the return-series helpers.
"""

import pytest
from decimal import Decimal

from domain.exceptions import InsufficientDataError
from portfolio_tracking import PerformanceAnalyzer
from portfolio_tracking import returns as rs


RF = Decimal("0.05")


@pytest.fixture
def analyzer():
    return PerformanceAnalyzer()


class TestReturnHelpers:

    def test_period_returns_skip_zero_base(self):
        values = [Decimal("0"), Decimal("100"), Decimal("110")]
        assert rs.period_returns(values) == [Decimal("0.1")]

    def test_max_drawdown(self):
        assert rs.max_drawdown([Decimal("1000"), Decimal("900")]) == Decimal("0.1")
        assert rs.max_drawdown([Decimal("1000"), Decimal("900"), Decimal("1200")]) == Decimal("0.1")
        assert rs.max_drawdown([Decimal("100"), Decimal("120"), Decimal("60")]) == Decimal("0.5")
        assert rs.max_drawdown([Decimal("1"), Decimal("2"), Decimal("3")]) == Decimal("0")

    @pytest.mark.parametrize("series", [
        ["1000", "900", "1200", "1100", "600", "650", "2000", "100"],
        ["50", "51", "52", "40", "60", "30", "30", "31"],
        ["1", "0.5", "0.25", "4", "3", "8", "0.1"],
    ])
    def test_max_drawdown_never_decreases_as_values_are_appended(self, series):
        values = []
        previous = Decimal("0")
        for value in series:
            values.append(Decimal(value))
            drawdown = rs.max_drawdown(values)
            assert drawdown >= previous
            assert Decimal("0") <= drawdown <= Decimal("1")
            previous = drawdown

    def test_pstdev_needs_two_values(self):
        assert rs.pstdev([Decimal("0.5")]) == Decimal("0")
        assert rs.pstdev([Decimal("1"), Decimal("3")]) == Decimal("1")

    def test_annualize(self):
        assert float(rs.annualize(Decimal("0.1"), 365)) == pytest.approx(0.1)
        assert rs.annualize(Decimal("-1.5"), 30) == Decimal("-1")
        # windows shorter than a day count as one day
        assert rs.annualize(Decimal("0"), 0) == Decimal("0")

    def test_downside_deviation(self):
        returns = [Decimal("0.02"), Decimal("-0.03"), Decimal("-0.04")]
        expected = ((Decimal("0.0009") + Decimal("0.0016")) / 2).sqrt()
        assert rs.downside_deviation(returns) == expected
        assert rs.downside_deviation([Decimal("0.01")]) == Decimal("0")

    def test_value_at_risk_uses_floor_index(self):
        returns = [Decimal(x) / 100 for x in range(-10, 10)]  # 20 values, ascending
        assert rs.value_at_risk(returns, 0.95) == Decimal("-0.09")
        assert rs.value_at_risk(returns, 0.90) == Decimal("-0.08")
        assert rs.value_at_risk(returns, 0.999) == Decimal("-0.10")
        assert rs.conditional_value_at_risk(returns, 0.90) == Decimal("-0.09")

    def test_to_float_maps_infinity_to_none(self):
        assert rs.to_float(Decimal("Infinity")) is None
        assert rs.to_float(Decimal("0.5")) == 0.5


class TestPerformanceAnalyzer:

    def test_single_snapshot_is_insufficient(self, analyzer, make_snapshots):
        with pytest.raises(InsufficientDataError) as exc_info:
            analyzer.compute(make_snapshots([1000]), RF)
        assert exc_info.value.available == 1
        assert exc_info.value.required == 2

    def test_empty_history_is_insufficient(self, analyzer):
        with pytest.raises(InsufficientDataError):
            analyzer.compute([], RF)

    def test_drawdown_and_total_return(self, analyzer, make_snapshots):
        metrics = analyzer.compute(make_snapshots([1000, 900]), RF)
        assert metrics.max_drawdown == Decimal("0.1")
        assert metrics.total_return == Decimal("-0.1")
        assert metrics.total_return_percentage == Decimal("-10.0")
        assert metrics.win_rate == Decimal("0")
        assert metrics.profit_factor == Decimal("0")

        metrics = analyzer.compute(make_snapshots([1000, 900, 1200]), RF)
        assert metrics.max_drawdown == Decimal("0.1")
        assert metrics.total_return == Decimal("0.2")

    def test_drawdown_grows_with_history(self, analyzer, make_snapshots):
        values = [1000, 1100, 990, 1300, 1250, 700, 1500]
        drawdowns = [
            analyzer.compute(make_snapshots(values[:end]), RF).max_drawdown
            for end in range(2, len(values) + 1)
        ]
        assert drawdowns == sorted(drawdowns)
        assert drawdowns[-1] == (Decimal("1300") - Decimal("700")) / Decimal("1300")

    def test_snapshot_order_does_not_matter(self, analyzer, make_snapshots):
        snapshots = make_snapshots([1000, 950, 1100, 1050])
        forward = analyzer.compute(snapshots, RF)
        backward = analyzer.compute(list(reversed(snapshots)), RF)
        assert forward == backward

    def test_deterministic(self, analyzer, make_snapshots):
        snapshots = make_snapshots([1000, 1030, 990, 1100, 1080])
        benchmark = ["0.01", "-0.02", "0.03", "0.00"]
        assert analyzer.compute(snapshots, RF, benchmark) == analyzer.compute(snapshots, RF, benchmark)

    def test_constant_growth_has_no_volatility(self, analyzer, make_snapshots):
        metrics = analyzer.compute(make_snapshots(["1000", "1010", "1020.1"]), RF)

        assert metrics.volatility == Decimal("0")
        assert metrics.sharpe_ratio == Decimal("0")
        assert metrics.sortino_ratio == Decimal("0")
        assert metrics.win_rate == Decimal("1")
        assert metrics.profit_factor == Decimal("Infinity")
        assert metrics.to_dict()['profit_factor'] is None

    def test_period_days_defaults_to_elapsed_time(self, analyzer, make_snapshots):
        metrics = analyzer.compute(make_snapshots([1000, 1100, 1210]), RF)
        assert metrics.period_days == Decimal("2")

        metrics = analyzer.compute(make_snapshots([1000, 1100]), RF, period_days=365)
        assert metrics.period_days == Decimal("365")
        assert float(metrics.annualized_return) == pytest.approx(0.1)

    def test_sharpe_uses_annualized_excess_return(self, analyzer, make_snapshots):
        metrics = analyzer.compute(make_snapshots([1000, 1050, 1000, 1100]), RF, period_days=365)
        expected = (metrics.annualized_return - RF) / metrics.volatility
        assert metrics.sharpe_ratio == expected
        assert metrics.volatility == rs.pstdev(rs.period_returns(
            [Decimal("1000"), Decimal("1050"), Decimal("1000"), Decimal("1100")]
        )) * rs.SQRT_PERIODS

    def test_beta_against_benchmark(self, analyzer, make_snapshots):
        """Portfolio moving twice as much as the benchmark has beta 2."""
        snapshots = make_snapshots(["1000", "1020", "999.6"])
        metrics = analyzer.compute(snapshots, RF, ["0.5", "0.01", "-0.01"])

        assert metrics.beta == Decimal("2")
        assert metrics.benchmark_return == Decimal("1.01") * Decimal("0.99") - 1
        assert metrics.alpha == metrics.total_return - (RF + 2 * (metrics.benchmark_return - RF))
        assert metrics.treynor_ratio == (metrics.annualized_return - RF) / 2
        assert metrics.tracking_error > 0

    def test_without_benchmark(self, analyzer, make_snapshots):
        metrics = analyzer.compute(make_snapshots([1000, 1100, 1050]), RF)
        assert metrics.beta == Decimal("0")
        assert metrics.treynor_ratio == Decimal("0")
        assert metrics.tracking_error == Decimal("0")
        assert metrics.information_ratio == Decimal("0")

    def test_to_dict_is_json_ready(self, analyzer, make_snapshots):
        data = analyzer.compute(make_snapshots([1000, 900, 1200]), RF).to_dict()
        assert data['schema_version'] == 1
        assert data['max_drawdown'] == pytest.approx(0.1)
        assert isinstance(data['start'], str)
