"""
AssetPosition entity - cost-basis state of one asset for one user.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from ..value_objects import Money, Price, Quantity


@dataclass(frozen=True)
class AssetPosition:
    """
    Weighted-average cost-basis position.

    Instances are immutable: the ledger computes a full replacement for every
    transaction that touches the asset and swaps it in as a whole.
    """

    user_id: str
    symbol: str
    quantity: Quantity
    weighted_average_price: Price
    total_invested: Money
    total_realized_pnl: Money
    first_acquisition: datetime
    last_activity: datetime

    @classmethod
    def open(cls, user_id: str, symbol: str, timestamp: datetime) -> 'AssetPosition':
        """Empty position created on first acquisition of an asset."""
        return cls(
            user_id=user_id,
            symbol=symbol,
            quantity=Quantity.zero(),
            weighted_average_price=Price.zero(),
            total_invested=Money.zero(),
            total_realized_pnl=Money.zero(),
            first_acquisition=timestamp,
            last_activity=timestamp
        )

    @property
    def cost_basis(self) -> Money:
        """Cost of the units currently held, at the weighted average price."""
        return Money(self.quantity.value * self.weighted_average_price.value)

    @property
    def is_open(self) -> bool:
        return not self.quantity.is_zero

    def market_value(self, price: Price) -> Money:
        return Money(self.quantity.value * price.value)

    def unrealized_pnl(self, price: Price) -> Money:
        return self.market_value(price) - self.cost_basis

    def evolve(self, **changes) -> 'AssetPosition':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'symbol': self.symbol,
            'quantity': str(self.quantity.value),
            'weighted_average_price': str(self.weighted_average_price.value),
            'total_invested': str(self.total_invested.amount),
            'total_realized_pnl': str(self.total_realized_pnl.amount),
            'cost_basis': str(self.cost_basis.amount),
            'first_acquisition': self.first_acquisition.isoformat(),
            'last_activity': self.last_activity.isoformat()
        }

    def __str__(self) -> str:
        return (
            f"{self.symbol}: {self.quantity} @ {self.weighted_average_price} "
            f"(realized {self.total_realized_pnl})"
        )


def zero_if_dust(value: Decimal, tolerance: Decimal = Decimal('1e-18')) -> Decimal:
    """Collapse floating residue left by repeated partial disposals."""
    return Decimal('0') if abs(value) <= tolerance else value
