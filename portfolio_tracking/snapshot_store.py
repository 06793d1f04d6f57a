"""
Point-in-time valuation of ledger positions and the snapshot history.
"""

from typing import Callable, Dict, Optional, Tuple, Any
from decimal import Decimal
from datetime import datetime, timedelta
from dataclasses import dataclass

from domain.entities import AssetPnL, AssetPosition, PortfolioSnapshot
from domain.exceptions import PriceSourceError, PriceUnavailable
from domain.value_objects import Money, Price
from infrastructure.interfaces import PortfolioStore, PriceSource
from utils.logging import get_logger, get_enhanced_logger, LogCategory
from .ledger import Ledger
from .metrics_cache import utc_now
from .user_locks import UserLockRegistry

logger = get_logger(__name__)
portfolio_logger = get_enhanced_logger(__name__, LogCategory.PORTFOLIO)

ZERO = Decimal('0')


def pnl_percentage(total_pnl: Decimal, total_invested: Decimal) -> Decimal:
    """P&L as a percentage of the capital invested; 0 with nothing invested."""
    if total_invested <= 0:
        return ZERO
    return total_pnl / total_invested * 100


@dataclass(frozen=True)
class PortfolioSummary:
    """Aggregate view of a user's live positions."""
    user_id: str
    timestamp: datetime
    total_value: Money
    total_invested: Money
    realized_pnl: Money
    unrealized_pnl: Money
    total_pnl: Money
    pnl_percentage: Decimal
    asset_count: int
    top_performer: Optional[str]
    worst_performer: Optional[str]
    stale_symbols: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'timestamp': self.timestamp.isoformat(),
            'total_value': float(self.total_value.amount),
            'total_invested': float(self.total_invested.amount),
            'realized_pnl': float(self.realized_pnl.amount),
            'unrealized_pnl': float(self.unrealized_pnl.amount),
            'total_pnl': float(self.total_pnl.amount),
            'pnl_percentage': float(self.pnl_percentage),
            'asset_count': self.asset_count,
            'top_performer': self.top_performer,
            'worst_performer': self.worst_performer,
            'stale_symbols': list(self.stale_symbols)
        }


class SnapshotStore:
    """
    Values ledger positions against the price source and keeps the
    append-only snapshot history in the persistence store.

    Never mutates the ledger.
    """

    def __init__(
        self,
        ledger: Ledger,
        price_source: PriceSource,
        store: PortfolioStore,
        locks: Optional[UserLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.ledger = ledger
        self.price_source = price_source
        self.store = store
        self.locks = locks or UserLockRegistry()
        self._clock = clock or utc_now

    def value_positions(self, user_id: str) -> Dict[str, AssetPnL]:
        """Live per-asset valuation, not persisted."""
        with self.locks.hold(user_id):
            positions = self.ledger.get_positions(user_id)
            prices = self._fetch_prices(
                {symbol for symbol, position in positions.items() if position.is_open}
            )
            return {
                symbol: self._value_position(position, prices.get(symbol))
                for symbol, position in sorted(positions.items())
            }

    def create_snapshot(self, user_id: str) -> PortfolioSnapshot:
        """
        Value every position and append the snapshot to the store.

        Raises:
            PersistenceFailure: the store rejected the snapshot
        """
        with self.locks.hold(user_id):
            breakdown = self.value_positions(user_id)

            total_value = Money.total(pnl.current_value for pnl in breakdown.values())
            total_invested = Money.total(pnl.total_invested for pnl in breakdown.values())
            total_pnl = Money.total(pnl.total_pnl for pnl in breakdown.values())
            stale = tuple(
                symbol for symbol, pnl in breakdown.items() if pnl.price_is_fallback
            )

            snapshot = PortfolioSnapshot(
                user_id=user_id,
                timestamp=self._clock(),
                total_value=total_value,
                total_invested=total_invested,
                total_pnl=total_pnl,
                pnl_percentage=pnl_percentage(total_pnl.amount, total_invested.amount),
                asset_breakdown=breakdown,
                stale_symbols=stale
            )
            self.store.append_snapshot(snapshot)

        portfolio_logger.log_portfolio_update(
            user_id=user_id,
            total_value=total_value.amount,
            total_pnl=total_pnl.amount,
            positions_count=len(breakdown),
            snapshot_id=snapshot.id,
            stale_symbols=list(stale)
        )
        return snapshot

    def get_history(self, user_id: str, window_days: Optional[int] = None) -> Tuple[PortfolioSnapshot, ...]:
        """Snapshots of the last ``window_days`` days, oldest first."""
        since = None
        if window_days is not None:
            since = self._clock() - timedelta(days=window_days)
        return tuple(self.store.query_snapshots(user_id, since))

    def get_portfolio_summary(self, user_id: str) -> PortfolioSummary:
        breakdown = self.value_positions(user_id)
        held = {symbol: pnl for symbol, pnl in breakdown.items() if not pnl.quantity.is_zero}

        total_value = Money.total(pnl.current_value for pnl in breakdown.values())
        total_invested = Money.total(pnl.total_invested for pnl in breakdown.values())
        realized = Money.total(pnl.realized_pnl for pnl in breakdown.values())
        unrealized = Money.total(pnl.unrealized_pnl for pnl in breakdown.values())
        total_pnl = realized + unrealized

        ranked = sorted(held, key=lambda symbol: (held[symbol].pnl_percentage, symbol))

        return PortfolioSummary(
            user_id=user_id,
            timestamp=self._clock(),
            total_value=total_value,
            total_invested=total_invested,
            realized_pnl=realized,
            unrealized_pnl=unrealized,
            total_pnl=total_pnl,
            pnl_percentage=pnl_percentage(total_pnl.amount, total_invested.amount),
            asset_count=len(held),
            top_performer=ranked[-1] if ranked else None,
            worst_performer=ranked[0] if ranked else None,
            stale_symbols=tuple(s for s, pnl in breakdown.items() if pnl.price_is_fallback)
        )

    def _fetch_prices(self, symbols) -> Dict[str, Decimal]:
        """One batched round trip; transient failures leave every symbol unpriced."""
        if not symbols:
            return {}

        try:
            prices = dict(self.price_source.get_prices(set(symbols)))
        except PriceSourceError as e:
            logger.warning(f"Price source failed, using cost basis for {len(symbols)} symbols: {e}")
            return {}

        for symbol in sorted(set(symbols) - set(prices)):
            logger.warning(str(PriceUnavailable(symbol)))
        return prices

    @staticmethod
    def _value_position(position: AssetPosition, quote: Optional[Decimal]) -> AssetPnL:
        average = position.weighted_average_price
        fallback = False

        if not position.is_open:
            price = average
        elif quote is None:
            price = average
            fallback = True
        else:
            try:
                price = Price(quote)
            except ValueError as e:
                logger.warning(str(PriceUnavailable(position.symbol, f"invalid quote {quote!r}: {e}")))
                price = average
                fallback = True

        current_value = position.market_value(price)
        unrealized = current_value - position.cost_basis
        total_pnl = position.total_realized_pnl + unrealized

        return AssetPnL(
            symbol=position.symbol,
            quantity=position.quantity,
            current_price=price,
            current_value=current_value,
            total_invested=position.total_invested,
            realized_pnl=position.total_realized_pnl,
            unrealized_pnl=unrealized,
            total_pnl=total_pnl,
            pnl_percentage=pnl_percentage(total_pnl.amount, position.total_invested.amount),
            average_buy_price=average,
            first_purchase=position.first_acquisition,
            last_transaction=position.last_activity,
            price_is_fallback=fallback
        )
