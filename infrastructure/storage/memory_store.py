"""
In-memory append-only portfolio store.
"""

import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from domain.entities import PortfolioSnapshot, Transaction
from domain.exceptions import PersistenceFailure
from infrastructure.interfaces import PortfolioStore
from utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryPortfolioStore(PortfolioStore):
    """
    Insertion-ordered transaction log and snapshot table held in memory.

    Records are kept per user in arrival order. Transaction ids are unique
    per store; appending a duplicate id is a persistence failure.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._transactions: Dict[str, List[Transaction]] = defaultdict(list)
        self._snapshots: Dict[str, List[PortfolioSnapshot]] = defaultdict(list)
        self._transaction_ids = set()

    def append_transaction(self, transaction: Transaction) -> None:
        with self._lock:
            if transaction.id in self._transaction_ids:
                raise PersistenceFailure(
                    "append_transaction",
                    ValueError(f"duplicate transaction id {transaction.id}")
                )
            self._transaction_ids.add(transaction.id)
            self._transactions[transaction.user_id].append(transaction)

        logger.debug(f"Stored transaction {transaction.id} for {transaction.user_id}")

    def append_snapshot(self, snapshot: PortfolioSnapshot) -> None:
        with self._lock:
            self._snapshots[snapshot.user_id].append(snapshot)

        logger.debug(f"Stored snapshot {snapshot.id} for {snapshot.user_id}")

    def query_transactions(self, user_id: str, limit: Optional[int] = None) -> Sequence[Transaction]:
        with self._lock:
            records = list(reversed(self._transactions.get(user_id, [])))

        if limit is not None:
            records = records[:max(limit, 0)]
        return tuple(records)

    def query_snapshots(self, user_id: str, since: Optional[datetime] = None) -> Sequence[PortfolioSnapshot]:
        with self._lock:
            records = list(self._snapshots.get(user_id, []))

        if since is not None:
            records = [snapshot for snapshot in records if snapshot.timestamp >= since]
        return tuple(sorted(records, key=lambda snapshot: snapshot.timestamp))

    def clear(self, user_id: Optional[str] = None) -> None:
        """Drop stored records for one user, or for everyone."""
        with self._lock:
            if user_id is None:
                self._transactions.clear()
                self._snapshots.clear()
                self._transaction_ids.clear()
                return

            for transaction in self._transactions.pop(user_id, []):
                self._transaction_ids.discard(transaction.id)
            self._snapshots.pop(user_id, None)
