"""
Weighted-average cost-basis ledger.

Every confirmed transaction is turned into complete replacement
AssetPosition objects (``evaluate``) which are swapped in as a unit
(``commit``). A transaction that fails validation leaves no trace.
"""

from typing import Dict, List, Optional, Iterable
from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from enum import Enum
from collections import defaultdict
import threading

from domain.entities import AssetPosition, Transaction, TransactionType
from domain.entities.asset_position import zero_if_dust
from domain.exceptions import InsufficientQuantity, InvalidTransaction
from domain.value_objects import Money, Price, Quantity
from utils.logging import get_logger, get_enhanced_logger, LogCategory

logger = get_logger(__name__)
ledger_logger = get_enhanced_logger(__name__, LogCategory.LEDGER)


class OversellPolicy(Enum):
    """What to do when a disposal exceeds the held quantity."""
    REJECT = "reject"   # raise InsufficientQuantity
    CLAMP = "clamp"     # dispose of what is held, pro-rate the proceeds

    @classmethod
    def parse(cls, value) -> 'OversellPolicy':
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


_INFORMATIONAL_TYPES = frozenset({
    TransactionType.STAKE, TransactionType.UNSTAKE, TransactionType.FEE
})


@dataclass(frozen=True)
class _Disposal:
    """Outcome of the sell rule for one leg."""
    position: AssetPosition
    quantity: Decimal
    proceeds: Decimal
    fraction: Decimal  # share of the requested quantity actually disposed of


class Ledger:
    """
    Per-user registry of AssetPosition objects.

    The ledger only guards its own dictionaries; serializing whole
    transactions per user is the caller's job (see UserLockRegistry).
    """

    def __init__(self, oversell_policy: OversellPolicy = OversellPolicy.REJECT):
        self.oversell_policy = OversellPolicy.parse(oversell_policy)
        self._positions: Dict[str, Dict[str, AssetPosition]] = defaultdict(dict)
        self._lock = threading.RLock()

        self._stats = {
            'transactions_applied': 0,
            'transactions_skipped': 0,
            'oversells_clamped': 0,
            'positions_opened': 0
        }

        logger.info(f"Ledger initialized with oversell policy {self.oversell_policy.value}")

    # Queries

    def get_positions(self, user_id: str) -> Dict[str, AssetPosition]:
        """All positions of a user keyed by symbol, including closed ones."""
        with self._lock:
            return dict(self._positions.get(user_id, {}))

    def get_position(self, user_id: str, symbol: str) -> Optional[AssetPosition]:
        with self._lock:
            return self._positions.get(user_id, {}).get(symbol)

    def get_open_positions(self, user_id: str) -> Dict[str, AssetPosition]:
        return {
            symbol: position for symbol, position in self.get_positions(user_id).items()
            if position.is_open
        }

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            stats = self._stats.copy()
            stats['users'] = len(self._positions)
            return stats

    # Mutation

    def apply(self, transaction: Transaction) -> List[AssetPosition]:
        """
        Apply one transaction and return the positions it touched.

        Non-confirmed and informational transactions return an empty list.
        """
        with self._lock:
            positions = self.evaluate(transaction)
            if positions:
                self.commit(transaction.user_id, positions)
            return positions

    def evaluate(self, transaction: Transaction) -> List[AssetPosition]:
        """
        Compute replacement positions for a transaction without committing.

        Raises:
            InvalidTransaction: malformed legs (missing token, zero amount)
            InsufficientQuantity: oversell under the REJECT policy
        """
        if not transaction.is_confirmed:
            logger.debug(
                f"Skipping {transaction.status.value} transaction {transaction.id}"
            )
            with self._lock:
                self._stats['transactions_skipped'] += 1
            return []

        tx_type = transaction.type

        if tx_type in _INFORMATIONAL_TYPES:
            logger.debug(f"Transaction {transaction.id} ({tx_type.value}) has no cost-basis effect")
            return []

        if tx_type == TransactionType.BUY:
            return [self._evaluate_buy(transaction)]

        if tx_type == TransactionType.SELL:
            disposal = self._evaluate_sell(transaction)
            return [disposal.position] if disposal else []

        if tx_type == TransactionType.SWAP:
            return self._evaluate_swap(transaction)

        if tx_type == TransactionType.YIELD:
            return [self._evaluate_yield(transaction)]

        raise InvalidTransaction(f"Unhandled transaction type {tx_type.value}")

    def commit(self, user_id: str, positions: Iterable[AssetPosition]) -> None:
        """Swap in replacement positions computed by ``evaluate``."""
        positions = list(positions)
        with self._lock:
            book = self._positions[user_id]
            for position in positions:
                if position.user_id != user_id:
                    raise ValueError(
                        f"Position for {position.user_id} cannot be committed to {user_id}"
                    )
                if position.symbol not in book:
                    self._stats['positions_opened'] += 1
                book[position.symbol] = position
            self._stats['transactions_applied'] += 1

        for position in positions:
            ledger_logger.ledger(
                f"Position updated: {position}",
                portfolio_context=position.to_dict()
            )

    def replay(self, user_id: str, transactions: Iterable[Transaction]) -> Dict[str, AssetPosition]:
        """
        Rebuild a user's positions from a transaction log, oldest first.

        The rebuilt book replaces the current one only if every transaction
        applies cleanly.
        """
        ordered = sorted(
            (tx for tx in transactions if tx.user_id == user_id),
            key=lambda tx: tx.timestamp
        )

        scratch = Ledger(self.oversell_policy)
        for transaction in ordered:
            scratch.apply(transaction)

        rebuilt = scratch.get_positions(user_id)
        with self._lock:
            self._positions[user_id] = dict(rebuilt)

        logger.info(f"Replayed {len(ordered)} transactions for {user_id}: {len(rebuilt)} positions")
        return rebuilt

    def reset(self, user_id: Optional[str] = None) -> None:
        """Forget positions of one user, or of every user."""
        with self._lock:
            if user_id is None:
                self._positions.clear()
            else:
                self._positions.pop(user_id, None)

    # Accounting rules

    def _current(self, user_id: str, symbol: str) -> Optional[AssetPosition]:
        return self.get_position(user_id, symbol)

    @staticmethod
    def _require_token(transaction: Transaction, name: str) -> str:
        token = getattr(transaction, name)
        if not token:
            raise InvalidTransaction(
                f"{transaction.type.value} transaction requires {name}",
                metadata={'transaction_id': transaction.id, 'field': name}
            )
        return token

    @staticmethod
    def _require_positive(transaction: Transaction, name: str) -> Decimal:
        amount = getattr(transaction, name)
        if amount <= 0:
            raise InvalidTransaction(
                f"{transaction.type.value} transaction requires a positive {name}",
                metadata={'transaction_id': transaction.id, 'field': name}
            )
        return amount

    def _acquire(self, position: Optional[AssetPosition], user_id: str, symbol: str,
                 quantity: Decimal, unit_cost: Decimal, invested: Decimal,
                 timestamp: datetime) -> AssetPosition:
        """Buy rule: fold ``quantity`` units at ``unit_cost`` into the average."""
        if position is None:
            position = AssetPosition.open(user_id, symbol, timestamp)

        held = position.quantity.value
        new_quantity = held + quantity
        new_average = (position.weighted_average_price.value * held + unit_cost * quantity) / new_quantity

        return position.evolve(
            quantity=Quantity(new_quantity),
            weighted_average_price=Price(new_average),
            total_invested=position.total_invested + Money(invested),
            last_activity=max(position.last_activity, timestamp)
        )

    def _dispose(self, transaction: Transaction, symbol: str, quantity: Decimal,
                 proceeds: Decimal) -> Optional[_Disposal]:
        """Sell rule, with the oversell policy applied."""
        position = self._current(transaction.user_id, symbol)
        held = position.quantity.value if position else Decimal('0')
        fraction = Decimal('1')

        if quantity > held:
            if self.oversell_policy == OversellPolicy.REJECT:
                raise InsufficientQuantity(transaction.user_id, symbol, held, quantity)

            fraction = held / quantity
            logger.warning(
                f"Clamping {transaction.type.value} of {quantity} {symbol} to held {held} "
                f"for {transaction.user_id} (transaction {transaction.id})"
            )
            with self._lock:
                self._stats['oversells_clamped'] += 1
            proceeds = proceeds * fraction
            quantity = held

            if position is None:
                return None

        average = position.weighted_average_price.value
        realized = proceeds - average * quantity

        updated = position.evolve(
            quantity=Quantity(zero_if_dust(held - quantity)),
            total_realized_pnl=position.total_realized_pnl + Money(realized),
            last_activity=max(position.last_activity, transaction.timestamp)
        )
        return _Disposal(position=updated, quantity=quantity, proceeds=proceeds, fraction=fraction)

    def _evaluate_buy(self, transaction: Transaction) -> AssetPosition:
        symbol = self._require_token(transaction, 'to_token')
        quantity = self._require_positive(transaction, 'to_amount')

        return self._acquire(
            self._current(transaction.user_id, symbol),
            transaction.user_id,
            symbol,
            quantity=quantity,
            unit_cost=transaction.unit_price,
            invested=transaction.from_amount,
            timestamp=transaction.timestamp
        )

    def _evaluate_sell(self, transaction: Transaction) -> Optional[_Disposal]:
        symbol = self._require_token(transaction, 'from_token')
        quantity = self._require_positive(transaction, 'from_amount')
        return self._dispose(transaction, symbol, quantity, proceeds=transaction.to_amount)

    def _evaluate_swap(self, transaction: Transaction) -> List[AssetPosition]:
        from_symbol = self._require_token(transaction, 'from_token')
        to_symbol = self._require_token(transaction, 'to_token')
        from_amount = self._require_positive(transaction, 'from_amount')
        to_amount = self._require_positive(transaction, 'to_amount')

        if from_symbol == to_symbol:
            raise InvalidTransaction(
                f"Swap {transaction.id} has the same token on both legs",
                metadata={'transaction_id': transaction.id, 'token': from_symbol}
            )

        disposal = self._dispose(
            transaction, from_symbol, from_amount, proceeds=from_amount * transaction.unit_price
        )
        if disposal is None:
            return []

        received = to_amount * disposal.fraction
        if received <= 0:
            return [disposal.position]

        acquired = self._acquire(
            self._current(transaction.user_id, to_symbol),
            transaction.user_id,
            to_symbol,
            quantity=received,
            unit_cost=disposal.proceeds / received,
            invested=disposal.proceeds,
            timestamp=transaction.timestamp
        )
        return [disposal.position, acquired]

    def _evaluate_yield(self, transaction: Transaction) -> AssetPosition:
        symbol = self._require_token(transaction, 'to_token')
        quantity = self._require_positive(transaction, 'to_amount')
        income = quantity * transaction.unit_price

        # No cost basis: the average and total_invested are left as they are.
        # A first yield opens the position with an average of 0.
        position = self._current(transaction.user_id, symbol)
        if position is None:
            position = AssetPosition.open(transaction.user_id, symbol, transaction.timestamp)

        return position.evolve(
            quantity=Quantity(position.quantity.value + quantity),
            total_realized_pnl=position.total_realized_pnl + Money(income),
            last_activity=max(position.last_activity, transaction.timestamp)
        )

