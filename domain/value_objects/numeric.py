"""
Decimal coercion shared by the numeric value objects.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Union

Numeric = Union[Decimal, float, int, str]


def to_decimal(value: Any) -> Decimal:
    """
    Convert a raw number to Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal('0.1') rather than
    its binary expansion. NaN and infinities are rejected.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise TypeError("Booleans are not numeric amounts")
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class NonNegativeDecimal:
    """Base for value objects that wrap a non-negative Decimal."""

    value: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'value', to_decimal(self.value))
        if self.value < 0:
            raise ValueError(f"{type(self).__name__} cannot be negative")

    def _coerce(self, other) -> Decimal:
        if isinstance(other, NonNegativeDecimal):
            return other.value
        return to_decimal(other)

    def __add__(self, other):
        return type(self)(self.value + self._coerce(other))

    def __sub__(self, other):
        return type(self)(self.value - self._coerce(other))

    def __mul__(self, other: Numeric):
        return type(self)(self.value * to_decimal(other))

    def __truediv__(self, other: Numeric):
        return type(self)(self.value / to_decimal(other))

    def __eq__(self, other) -> bool:
        if isinstance(other, NonNegativeDecimal):
            return type(self) is type(other) and self.value == other.value
        try:
            return self.value == to_decimal(other)
        except (TypeError, ValueError):
            return False

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.value))

    def __lt__(self, other) -> bool:
        return self.value < self._coerce(other)

    def __le__(self, other) -> bool:
        return self.value <= self._coerce(other)

    def __gt__(self, other) -> bool:
        return self.value > self._coerce(other)

    def __ge__(self, other) -> bool:
        return self.value >= self._coerce(other)

    @property
    def is_zero(self) -> bool:
        return self.value == 0


@dataclass(frozen=True, eq=False)
class Quantity(NonNegativeDecimal):
    """Units of an asset held. Never negative."""

    def __str__(self) -> str:
        return f"{self.value.normalize():f}"

    @classmethod
    def zero(cls) -> 'Quantity':
        return cls(Decimal('0'))


@dataclass(frozen=True, eq=False)
class Price(NonNegativeDecimal):
    """Quote price of one unit of an asset."""

    def __str__(self) -> str:
        return f"${self.value:.2f}"

    @classmethod
    def zero(cls) -> 'Price':
        return cls(Decimal('0'))
