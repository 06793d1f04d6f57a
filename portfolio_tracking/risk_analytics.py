"""
Risk analytics: tail risk of the return series and composition risk of
the current holdings.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Any
from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass, field

from domain.entities import AssetPnL, PortfolioSnapshot
from domain.value_objects import Money, to_decimal
from utils.logging import get_logger, get_enhanced_logger, performance_logging, LogCategory
from . import returns as rs
from .performance_analytics import require_history, snapshot_values

logger = get_logger(__name__)
risk_logger = get_enhanced_logger(__name__, LogCategory.RISK)

RISK_SCHEMA_VERSION = 1
DEFAULT_CONFIDENCE_LEVELS = (0.95, 0.99)


def confidence_label(level) -> str:
    return f"{float(level):g}"


@dataclass(frozen=True)
class RiskMetrics:
    """
    Risk profile of a portfolio.

    VaR and CVaR are per-period returns (negative == loss). Concentration,
    liquidity and correlation risk lie in [0, 1], higher meaning riskier.
    """
    calculation_time: datetime
    observations: int

    # Tail risk
    var_95: Decimal
    var_99: Decimal
    cvar_95: Decimal
    cvar_99: Decimal
    value_at_risk: Mapping[str, Decimal]
    conditional_value_at_risk: Mapping[str, Decimal]

    # Volatility
    portfolio_volatility: Decimal
    max_drawdown: Decimal
    tracking_error: Decimal

    # Composition
    concentration_risk: Decimal
    liquidity_risk: Decimal
    correlation_risk: Decimal
    diversification_ratio: Decimal
    asset_weights: Mapping[str, Decimal] = field(default_factory=dict)

    schema_version: int = RISK_SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'schema_version': self.schema_version,
            'calculation_time': self.calculation_time.isoformat(),
            'observations': self.observations,
            'var_95': float(self.var_95),
            'var_99': float(self.var_99),
            'cvar_95': float(self.cvar_95),
            'cvar_99': float(self.cvar_99),
            'value_at_risk': {k: float(v) for k, v in self.value_at_risk.items()},
            'conditional_value_at_risk': {
                k: float(v) for k, v in self.conditional_value_at_risk.items()
            },
            'portfolio_volatility': float(self.portfolio_volatility),
            'max_drawdown': float(self.max_drawdown),
            'tracking_error': float(self.tracking_error),
            'concentration_risk': float(self.concentration_risk),
            'liquidity_risk': float(self.liquidity_risk),
            'correlation_risk': float(self.correlation_risk),
            'diversification_ratio': float(self.diversification_ratio),
            'asset_weights': {k: float(v) for k, v in self.asset_weights.items()}
        }


def position_value(position) -> Decimal:
    """Current value of an AssetPnL, a Money amount or a bare number."""
    if isinstance(position, AssetPnL):
        return position.current_value.amount
    if isinstance(position, Money):
        return position.amount
    return to_decimal(position)


class RiskAnalyzer:
    """Stateless risk calculator."""

    def __init__(
        self,
        confidence_levels: Iterable = DEFAULT_CONFIDENCE_LEVELS,
        default_liquidity_score=0.5,
        default_correlation=0.5,
        concentration_alert_threshold=0.5
    ):
        self.confidence_levels = tuple(sorted(to_decimal(level) for level in confidence_levels))
        for level in self.confidence_levels:
            if not 0 < level < 1:
                raise ValueError(f"Confidence level must be between 0 and 1, got {level}")
        self.default_liquidity_score = to_decimal(default_liquidity_score)
        self.default_correlation = to_decimal(default_correlation)
        self.concentration_alert_threshold = to_decimal(concentration_alert_threshold)

    @performance_logging()
    def compute(
        self,
        snapshots: Sequence[PortfolioSnapshot],
        positions: Mapping[str, Any],
        correlation_matrix: Mapping[str, Mapping[str, Any]],
        liquidity_scores: Optional[Mapping[str, Any]] = None,
        benchmark_returns: Optional[Sequence] = None,
        calculation_time: Optional[datetime] = None
    ) -> RiskMetrics:
        """
        Compute risk metrics.

        Args:
            snapshots: Snapshot history (at least two)
            positions: Symbol to current value (AssetPnL, Money or number)
            correlation_matrix: Pairwise asset correlations
            liquidity_scores: Symbol to liquidity score in [0, 1]
            benchmark_returns: Per-period benchmark returns for tracking error
            calculation_time: Timestamp recorded on the result

        Raises:
            InsufficientDataError: fewer than two snapshots
        """
        ordered = require_history(snapshots, "risk metrics")
        values = snapshot_values(ordered)
        period_returns = rs.period_returns(values)

        var_levels = {
            confidence_label(level): rs.value_at_risk(period_returns, level)
            for level in self.confidence_levels
        }
        cvar_levels = {
            confidence_label(level): rs.conditional_value_at_risk(period_returns, level)
            for level in self.confidence_levels
        }

        tracking_error = rs.ZERO
        if benchmark_returns:
            portfolio_aligned, benchmark_aligned = rs.align(
                period_returns, [to_decimal(value) for value in benchmark_returns]
            )
            tracking_error = rs.pstdev([p - b for p, b in zip(portfolio_aligned, benchmark_aligned)])

        weights = self.weights(positions)
        concentration = self.concentration_risk(weights)

        metrics = RiskMetrics(
            calculation_time=calculation_time or ordered[-1].timestamp,
            observations=len(ordered),
            var_95=rs.value_at_risk(period_returns, Decimal('0.95')),
            var_99=rs.value_at_risk(period_returns, Decimal('0.99')),
            cvar_95=rs.conditional_value_at_risk(period_returns, Decimal('0.95')),
            cvar_99=rs.conditional_value_at_risk(period_returns, Decimal('0.99')),
            value_at_risk=var_levels,
            conditional_value_at_risk=cvar_levels,
            portfolio_volatility=rs.pstdev(period_returns) * rs.SQRT_PERIODS,
            max_drawdown=rs.max_drawdown(values),
            tracking_error=tracking_error,
            concentration_risk=concentration,
            liquidity_risk=self.liquidity_risk(weights, liquidity_scores or {}),
            correlation_risk=self.correlation_risk(weights, correlation_matrix or {}),
            diversification_ratio=self.diversification_ratio(weights),
            asset_weights=weights
        )

        if concentration >= self.concentration_alert_threshold and len(weights) > 0:
            top = max(weights, key=weights.get)
            risk_logger.log_risk_event(
                event_type="concentration",
                severity="medium",
                description=f"Herfindahl index {concentration:.3f}, largest holding {top}",
                affected_positions=sorted(weights)
            )

        return metrics

    @staticmethod
    def weights(positions: Mapping[str, Any]) -> Dict[str, Decimal]:
        """Value fractions of the assets with a positive value."""
        values = {
            symbol: position_value(position) for symbol, position in positions.items()
        }
        values = {symbol: value for symbol, value in values.items() if value > 0}
        total = sum(values.values(), rs.ZERO)
        if total == 0:
            return {}
        return {symbol: value / total for symbol, value in sorted(values.items())}

    @staticmethod
    def concentration_risk(weights: Mapping[str, Decimal]) -> Decimal:
        """Herfindahl index."""
        return sum((w * w for w in weights.values()), rs.ZERO)

    def liquidity_risk(self, weights: Mapping[str, Decimal],
                       liquidity_scores: Mapping[str, Any]) -> Decimal:
        if not weights:
            return rs.ZERO
        weighted = sum(
            (
                w * to_decimal(liquidity_scores.get(symbol, self.default_liquidity_score))
                for symbol, w in weights.items()
            ),
            rs.ZERO
        )
        return rs.ONE - weighted

    def correlation_risk(self, weights: Mapping[str, Decimal],
                         correlation_matrix: Mapping[str, Mapping[str, Any]]) -> Decimal:
        """Pairwise correlations averaged with weights w_i * w_j."""
        pairs = self._pairs(list(weights))
        if not pairs:
            return rs.ZERO

        weighted = rs.ZERO
        total_weight = rs.ZERO
        for first, second in pairs:
            pair_weight = weights[first] * weights[second]
            weighted += pair_weight * self._lookup_correlation(correlation_matrix, first, second)
            total_weight += pair_weight

        return weighted / total_weight if total_weight > 0 else rs.ZERO

    @staticmethod
    def diversification_ratio(weights: Mapping[str, Decimal]) -> Decimal:
        """Effective number of assets over the actual number."""
        concentration = RiskAnalyzer.concentration_risk(weights)
        if concentration == 0:
            return rs.ZERO
        return (rs.ONE / concentration) / len(weights)

    @staticmethod
    def _pairs(symbols: List[str]) -> List[Tuple[str, str]]:
        return [
            (symbols[i], symbols[j])
            for i in range(len(symbols))
            for j in range(i + 1, len(symbols))
        ]

    def _lookup_correlation(self, matrix: Mapping[str, Mapping[str, Any]],
                            first: str, second: str) -> Decimal:
        value = matrix.get(first, {}).get(second)
        if value is None:
            value = matrix.get(second, {}).get(first)
        if value is None:
            return self.default_correlation
        return to_decimal(value)
