"""
Per-user mutual exclusion.
"""

from contextlib import contextmanager
from typing import Dict, Iterator
import threading


class UserLockRegistry:
    """
    One re-entrant lock per user id, created on first use.

    Holding a user's lock serializes every ledger mutation, price fetch and
    snapshot write for that user; other users proceed in parallel.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, user_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[user_id] = lock
            return lock

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        lock = self.lock_for(user_id)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
