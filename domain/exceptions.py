"""
Error taxonomy for the portfolio ledger and analytics engine.

Accounting violations and storage failures propagate to the caller. Price
gaps are the only condition recovered locally (see PriceUnavailable).
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class PortfolioError(Exception):
    """Base exception for ledger and analytics errors."""

    def __init__(
        self,
        message: str,
        recoverable: bool = False,
        metadata: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.metadata = metadata or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error_type': type(self).__name__,
            'message': self.message,
            'recoverable': self.recoverable,
            'metadata': self.metadata,
            'timestamp': self.timestamp.isoformat()
        }


class InvalidTransaction(PortfolioError):
    """Transaction record is malformed; rejected before any mutation."""


class InvalidTransactionType(InvalidTransaction):
    """Transaction type is not one of the recognised kinds."""

    def __init__(self, transaction_type: Any):
        super().__init__(
            f"Unrecognised transaction type: {transaction_type!r}",
            metadata={'transaction_type': str(transaction_type)}
        )
        self.transaction_type = transaction_type


class InsufficientQuantity(PortfolioError):
    """A sell or swap would take the held quantity below zero."""

    def __init__(self, user_id: str, symbol: str, held, requested):
        super().__init__(
            f"Cannot dispose of {requested} {symbol} for user {user_id}: only {held} held",
            metadata={
                'user_id': user_id,
                'symbol': symbol,
                'held': str(held),
                'requested': str(requested)
            }
        )
        self.user_id = user_id
        self.symbol = symbol
        self.held = held
        self.requested = requested


class InsufficientDataError(PortfolioError):
    """Not enough snapshots to compute a return series."""

    def __init__(self, required: int, available: int, context: str = "metrics"):
        super().__init__(
            f"Insufficient data for {context}: need at least {required} snapshots, got {available}",
            metadata={'required': required, 'available': available, 'context': context}
        )
        self.required = required
        self.available = available


class UnknownBenchmarkError(PortfolioError):
    """Requested benchmark symbol is not registered."""

    def __init__(self, symbol: str, available=None):
        available = sorted(available or [])
        super().__init__(
            f"Unknown benchmark {symbol!r}; available: {', '.join(available) or 'none'}",
            metadata={'symbol': symbol, 'available': available}
        )
        self.symbol = symbol


class PriceUnavailable(PortfolioError):
    """No market price for a symbol; the cost basis is used instead."""

    def __init__(self, symbol: str, reason: str = "not quoted"):
        super().__init__(
            f"Price unavailable for {symbol}: {reason}",
            recoverable=True,
            metadata={'symbol': symbol, 'reason': reason}
        )
        self.symbol = symbol


class PriceSourceError(PortfolioError):
    """Transient failure of the price source (network error, timeout)."""

    def __init__(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message, recoverable=True, metadata=metadata)


class PersistenceFailure(PortfolioError):
    """The persistence store could not durably record or read data."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Persistence operation '{operation}' failed{detail}",
            metadata={'operation': operation}
        )
        self.operation = operation
        self.cause = cause
