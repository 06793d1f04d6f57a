"""
Value objects - Immutable objects that represent concepts.
"""

from .symbol import Symbol
from .numeric import Price, Quantity, to_decimal
from .money import Money

__all__ = ["Symbol", "Price", "Quantity", "Money", "to_decimal"]
