"""
Asset symbol value object.
"""

from dataclasses import dataclass
from typing import Optional

MAX_SYMBOL_LENGTH = 20


@dataclass(frozen=True)
class Symbol:
    """
    Token or asset symbol, optionally qualified by network.

    Case is preserved: token symbols such as ``mSOL`` and ``MSOL`` name
    different assets.
    """

    ticker: str
    network: Optional[str] = None

    def __post_init__(self):
        if not self.ticker or not self.ticker.strip():
            raise ValueError("Symbol ticker cannot be empty")

        object.__setattr__(self, 'ticker', self.ticker.strip())
        if len(self.ticker) > MAX_SYMBOL_LENGTH:
            raise ValueError("Symbol ticker too long")
        if ':' in self.ticker:
            raise ValueError("Symbol ticker cannot contain ':'")
        if self.network:
            object.__setattr__(self, 'network', self.network.strip().lower())

    def __str__(self) -> str:
        if self.network:
            return f"{self.ticker}:{self.network}"
        return self.ticker

    @classmethod
    def from_string(cls, symbol_str: str) -> 'Symbol':
        """Parse ``TICKER`` or ``TICKER:network``."""
        if ':' in symbol_str:
            ticker, network = symbol_str.split(':', 1)
            return cls(ticker=ticker, network=network)
        return cls(ticker=symbol_str)
