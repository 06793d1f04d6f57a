"""
Money value object.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .numeric import Numeric, to_decimal


@dataclass(frozen=True)
class Money:
    """Signed amount in a quote currency. P&L figures are negative on losses."""

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_decimal(self.amount))
        object.__setattr__(self, 'currency', self.currency.upper())

        if len(self.currency) < 3 or len(self.currency) > 5:
            raise ValueError("Currency code must be 3 to 5 characters")

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Can only {verb} Money with Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency} and {other.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __mul__(self, other: Numeric) -> 'Money':
        return Money(self.amount * to_decimal(other), self.currency)

    def __truediv__(self, other: Numeric) -> 'Money':
        return Money(self.amount / to_decimal(other), self.currency)

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __le__(self, other: 'Money') -> bool:
        return not self > other

    def __ge__(self, other: 'Money') -> bool:
        return not self < other

    def percentage_of(self, base: 'Money') -> Decimal:
        """This amount as a percentage (0-100 scale) of ``base``; 0 when base is 0."""
        self._check_currency(base, "compare")
        if base.amount == 0:
            return Decimal('0')
        return self.amount / base.amount * 100

    @classmethod
    def zero(cls, currency: str = "USD") -> 'Money':
        return cls(Decimal('0'), currency)

    @classmethod
    def total(cls, amounts: Iterable['Money'], currency: str = "USD") -> 'Money':
        """Sum a collection of Money, returning zero for an empty one."""
        result = cls.zero(currency)
        for amount in amounts:
            result = result + amount
        return result

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    @property
    def is_zero(self) -> bool:
        return self.amount == 0
