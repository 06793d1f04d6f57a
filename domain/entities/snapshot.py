"""
Portfolio snapshot entities - point-in-time valuation records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple
import uuid

from ..value_objects import Money, Price, Quantity


@dataclass(frozen=True)
class AssetPnL:
    """Valuation of one asset inside a snapshot."""
    symbol: str
    quantity: Quantity
    current_price: Price
    current_value: Money
    total_invested: Money
    realized_pnl: Money
    unrealized_pnl: Money
    total_pnl: Money
    pnl_percentage: Decimal
    average_buy_price: Price
    first_purchase: datetime
    last_transaction: datetime
    price_is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'quantity': str(self.quantity.value),
            'current_price': str(self.current_price.value),
            'current_value': str(self.current_value.amount),
            'total_invested': str(self.total_invested.amount),
            'realized_pnl': str(self.realized_pnl.amount),
            'unrealized_pnl': str(self.unrealized_pnl.amount),
            'total_pnl': str(self.total_pnl.amount),
            'pnl_percentage': str(self.pnl_percentage),
            'average_buy_price': str(self.average_buy_price.value),
            'first_purchase': self.first_purchase.isoformat(),
            'last_transaction': self.last_transaction.isoformat(),
            'price_is_fallback': self.price_is_fallback
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssetPnL':
        return cls(
            symbol=data['symbol'],
            quantity=Quantity(data['quantity']),
            current_price=Price(data['current_price']),
            current_value=Money(data['current_value']),
            total_invested=Money(data['total_invested']),
            realized_pnl=Money(data['realized_pnl']),
            unrealized_pnl=Money(data['unrealized_pnl']),
            total_pnl=Money(data['total_pnl']),
            pnl_percentage=Decimal(data['pnl_percentage']),
            average_buy_price=Price(data['average_buy_price']),
            first_purchase=datetime.fromisoformat(data['first_purchase']),
            last_transaction=datetime.fromisoformat(data['last_transaction']),
            price_is_fallback=bool(data.get('price_is_fallback', False))
        )


def new_snapshot_id() -> str:
    return f"snapshot_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Append-only point-in-time capture of a user's portfolio."""
    user_id: str
    timestamp: datetime
    total_value: Money
    total_invested: Money
    total_pnl: Money
    pnl_percentage: Decimal
    asset_breakdown: Mapping[str, AssetPnL] = field(default_factory=dict)
    stale_symbols: Tuple[str, ...] = ()
    id: str = field(default_factory=new_snapshot_id)

    @property
    def realized_pnl(self) -> Money:
        return Money.total(pnl.realized_pnl for pnl in self.asset_breakdown.values())

    @property
    def unrealized_pnl(self) -> Money:
        return Money.total(pnl.unrealized_pnl for pnl in self.asset_breakdown.values())

    @property
    def has_stale_prices(self) -> bool:
        return bool(self.stale_symbols)

    def get_asset(self, symbol: str) -> Optional[AssetPnL]:
        return self.asset_breakdown.get(symbol)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'timestamp': self.timestamp.isoformat(),
            'total_value': str(self.total_value.amount),
            'total_invested': str(self.total_invested.amount),
            'total_pnl': str(self.total_pnl.amount),
            'pnl_percentage': str(self.pnl_percentage),
            'asset_breakdown': {
                symbol: pnl.to_dict() for symbol, pnl in self.asset_breakdown.items()
            },
            'stale_symbols': list(self.stale_symbols)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PortfolioSnapshot':
        return cls(
            id=data['id'],
            user_id=data['user_id'],
            timestamp=datetime.fromisoformat(data['timestamp']),
            total_value=Money(data['total_value']),
            total_invested=Money(data['total_invested']),
            total_pnl=Money(data['total_pnl']),
            pnl_percentage=Decimal(data['pnl_percentage']),
            asset_breakdown={
                symbol: AssetPnL.from_dict(pnl)
                for symbol, pnl in data.get('asset_breakdown', {}).items()
            },
            stale_symbols=tuple(data.get('stale_symbols', ()))
        )
