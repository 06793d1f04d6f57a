"""
Transaction entity - an immutable record of an asset movement.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from ..exceptions import InvalidTransaction, InvalidTransactionType
from ..value_objects import Symbol, to_decimal


class TransactionType(Enum):
    """Kinds of asset movement the ledger understands."""
    BUY = "buy"
    SELL = "sell"
    SWAP = "swap"
    STAKE = "stake"
    UNSTAKE = "unstake"
    YIELD = "yield"
    FEE = "fee"

    @classmethod
    def parse(cls, value: Any) -> 'TransactionType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidTransactionType(value)


class TransactionStatus(Enum):
    """Settlement status. Only CONFIRMED transactions are accounted."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: Any) -> 'TransactionStatus':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidTransaction(
                f"Unrecognised transaction status: {value!r}",
                metadata={'status': str(value)}
            )


def new_transaction_id() -> str:
    return f"tx_{uuid.uuid4().hex}"


def parse_timestamp(value: Any) -> datetime:
    """Accept datetimes, ISO strings and epoch milliseconds; return aware UTC."""
    if isinstance(value, datetime):
        timestamp = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        timestamp = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            timestamp = datetime.fromisoformat(value)
        except ValueError:
            raise InvalidTransaction(f"Invalid timestamp: {value!r}")
    else:
        raise InvalidTransaction(f"Invalid timestamp: {value!r}")

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


_AMOUNT_FIELDS = ('from_amount', 'to_amount', 'unit_price', 'gas_used', 'gas_cost')


@dataclass(frozen=True)
class Transaction:
    """
    Confirmed, pending or failed asset movement.

    For buys ``from_amount`` is the quote currency spent and ``to_amount``
    the units received; for sells ``from_amount`` is the units disposed of
    and ``to_amount`` the proceeds. ``unit_price`` is the quote price of the
    asset being bought or sold (for swaps, of the ``from_token``).
    """

    user_id: str
    type: TransactionType
    from_token: str
    to_token: str
    from_amount: Decimal
    to_amount: Decimal
    unit_price: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: TransactionStatus = TransactionStatus.CONFIRMED
    external_reference: str = ""
    gas_used: Decimal = Decimal('0')
    gas_cost: Decimal = Decimal('0')
    venue: str = ""
    notes: Optional[str] = None
    id: str = field(default_factory=new_transaction_id)

    def __post_init__(self):
        if not self.user_id or not str(self.user_id).strip():
            raise InvalidTransaction("Transaction user_id cannot be empty")

        object.__setattr__(self, 'type', TransactionType.parse(self.type))
        object.__setattr__(self, 'status', TransactionStatus.parse(self.status))
        object.__setattr__(self, 'timestamp', parse_timestamp(self.timestamp))

        for name in _AMOUNT_FIELDS:
            try:
                amount = to_decimal(getattr(self, name))
            except (TypeError, ValueError) as e:
                raise InvalidTransaction(f"Invalid {name}: {e}", metadata={'field': name})
            if amount < 0:
                raise InvalidTransaction(f"{name} cannot be negative", metadata={'field': name})
            object.__setattr__(self, name, amount)

        for name in ('from_token', 'to_token'):
            raw = getattr(self, name)
            if raw is None:
                raw = ""
            if not isinstance(raw, str):
                raise InvalidTransaction(
                    f"Invalid {name}: expected a token symbol, got {type(raw).__name__}",
                    metadata={'field': name}
                )
            if raw.strip():
                try:
                    raw = Symbol(raw).ticker
                except ValueError as e:
                    raise InvalidTransaction(f"Invalid {name}: {e}", metadata={'field': name})
            object.__setattr__(self, name, raw.strip())

    @property
    def is_confirmed(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED

    def with_status(self, status: TransactionStatus) -> 'Transaction':
        """Copy of this transaction with a new settlement status."""
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type.value,
            'from_token': self.from_token,
            'to_token': self.to_token,
            'from_amount': str(self.from_amount),
            'to_amount': str(self.to_amount),
            'unit_price': str(self.unit_price),
            'timestamp': self.timestamp.isoformat(),
            'external_reference': self.external_reference,
            'gas_used': str(self.gas_used),
            'gas_cost': str(self.gas_cost),
            'status': self.status.value,
            'venue': self.venue,
            'notes': self.notes
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Build from a stored or wire record (accepts camelCase keys)."""
        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        kwargs = dict(
            user_id=pick('user_id', 'userId'),
            type=pick('type'),
            from_token=pick('from_token', 'fromToken', default=""),
            to_token=pick('to_token', 'toToken', default=""),
            from_amount=pick('from_amount', 'fromAmount', default=0),
            to_amount=pick('to_amount', 'toAmount', default=0),
            unit_price=pick('unit_price', 'price', default=0),
            status=pick('status', default=TransactionStatus.CONFIRMED),
            external_reference=pick('external_reference', 'txHash', default=""),
            gas_used=pick('gas_used', 'gasUsed', default=0),
            gas_cost=pick('gas_cost', 'gasCost', default=0),
            venue=pick('venue', 'exchange', default=""),
            notes=pick('notes'),
        )
        if kwargs['type'] is None:
            raise InvalidTransactionType(None)

        timestamp = pick('timestamp')
        if timestamp is not None:
            kwargs['timestamp'] = timestamp
        transaction_id = pick('id')
        if transaction_id:
            kwargs['id'] = transaction_id

        return cls(**kwargs)
