"""
Short-lived cache of derived metrics, keyed per user.
"""

from typing import Any, Callable, Dict, Hashable, Optional, Tuple
from collections import defaultdict
from datetime import datetime, timedelta, timezone
import threading

from utils.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]
CacheKey = Tuple[str, str, Hashable, Hashable]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MetricsCache:
    """
    TTL cache for metric results.

    Keys are (user id, metric family, window, benchmark). Entries of a user
    are dropped together when that user records a transaction. Each
    invalidation bumps the user's generation; a value computed under an
    older generation is never stored.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._cache_duration = timedelta(seconds=ttl_seconds)
        self._metrics_cache: Dict[CacheKey, Any] = {}
        self._cache_expiry: Dict[CacheKey, datetime] = {}
        self._generations: Dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._stale_puts = 0

    @staticmethod
    def key(user_id: str, family: str, window: Hashable = None, benchmark: Hashable = None) -> CacheKey:
        return (user_id, family, window, benchmark)

    def generation(self, user_id: str) -> int:
        with self._lock:
            return self._generations[user_id]

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            expiry = self._cache_expiry.get(key)
            if expiry is not None and self._clock() < expiry:
                self._hits += 1
                return self._metrics_cache[key]

            if expiry is not None:
                del self._metrics_cache[key]
                del self._cache_expiry[key]
            self._misses += 1
            return None

    def put(self, key: CacheKey, value: Any, generation: Optional[int] = None) -> bool:
        """
        Store ``value`` under ``key``.

        When ``generation`` is given and the user has been invalidated since,
        the value is dropped and False is returned.
        """
        if self._cache_duration.total_seconds() <= 0:
            return False
        with self._lock:
            if generation is not None and generation != self._generations[key[0]]:
                self._stale_puts += 1
                logger.debug(f"Dropped {key[1]} metrics for {key[0]} computed before an invalidation")
                return False
            self._metrics_cache[key] = value
            self._cache_expiry[key] = self._clock() + self._cache_duration
            return True

    def get_or_compute(self, key: CacheKey, compute: Callable[[], Any]) -> Any:
        """Cached value for ``key``, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached
        generation = self.generation(key[0])
        value = compute()
        self.put(key, value, generation)
        return value

    def invalidate_user(self, user_id: str) -> int:
        with self._lock:
            self._generations[user_id] += 1
            stale = [key for key in self._metrics_cache if key[0] == user_id]
            for key in stale:
                del self._metrics_cache[key]
                del self._cache_expiry[key]

        if stale:
            logger.debug(f"Invalidated {len(stale)} cached metrics for {user_id}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._metrics_cache.clear()
            self._cache_expiry.clear()

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return {
                'entries': len(self._metrics_cache),
                'hits': self._hits,
                'misses': self._misses,
                'stale_puts': self._stale_puts
            }
