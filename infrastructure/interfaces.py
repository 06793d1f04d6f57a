"""
Abstract interfaces for pluggable price sources, benchmark indices and storage.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Set

from domain.entities import PortfolioSnapshot, Transaction


class PriceSource(ABC):
    """Abstract interface for current market prices."""

    @abstractmethod
    def get_prices(self, symbols: Set[str]) -> Dict[str, Decimal]:
        """
        Get current prices for a set of asset symbols in one round trip.

        Args:
            symbols: Asset symbols to quote

        Returns:
            Mapping of symbol to price. Symbols without a quote are omitted.

        Raises:
            PriceSourceError: transient failure of the whole request
        """
        pass


class BenchmarkIndexSource(ABC):
    """Abstract interface for market index return series."""

    @abstractmethod
    def get_returns(self, symbol: str, days: int) -> List[Decimal]:
        """
        Get per-period returns of a registered benchmark, oldest first.

        Args:
            symbol: Benchmark symbol (e.g. ``CRYPTO_INDEX``)
            days: Look-back window in days

        Raises:
            UnknownBenchmarkError: symbol is not registered
            PriceSourceError: the index data could not be fetched
        """
        pass

    @abstractmethod
    def available_benchmarks(self) -> List[str]:
        """Registered benchmark symbols."""
        pass

    def get_name(self, symbol: str) -> str:
        """Display name of a benchmark."""
        return symbol

    def is_registered(self, symbol: str) -> bool:
        return symbol in self.available_benchmarks()


class PortfolioStore(ABC):
    """Abstract interface for the append-only transaction log and snapshot table."""

    @abstractmethod
    def append_transaction(self, transaction: Transaction) -> None:
        """Persist a transaction. Raises PersistenceFailure on error."""
        pass

    @abstractmethod
    def append_snapshot(self, snapshot: PortfolioSnapshot) -> None:
        """Persist a snapshot. Raises PersistenceFailure on error."""
        pass

    @abstractmethod
    def query_transactions(self, user_id: str, limit: Optional[int] = None) -> Sequence[Transaction]:
        """
        Get a user's transactions, newest first.

        Args:
            user_id: Owner of the transactions
            limit: Maximum number of records, all when None
        """
        pass

    @abstractmethod
    def query_snapshots(self, user_id: str, since: Optional[datetime] = None) -> Sequence[PortfolioSnapshot]:
        """
        Get a user's snapshots taken at or after ``since``, oldest first.
        """
        pass


class PriceSourceFactory:
    """Factory for creating price sources."""

    _sources: Dict[str, type] = {}

    @classmethod
    def register(cls, name: str, source_class: type):
        """Register a price source."""
        cls._sources[name] = source_class

    @classmethod
    def create(cls, name: str, **kwargs) -> PriceSource:
        """Create a price source instance."""
        if name not in cls._sources:
            raise ValueError(f"Unknown price source: {name}")

        return cls._sources[name](**kwargs)

    @classmethod
    def list_sources(cls) -> List[str]:
        """List available price sources."""
        return list(cls._sources.keys())


class BenchmarkIndexFactory:
    """Factory for creating benchmark index sources."""

    _indices: Dict[str, type] = {}

    @classmethod
    def register(cls, name: str, index_class: type):
        """Register a benchmark index source."""
        cls._indices[name] = index_class

    @classmethod
    def create(cls, name: str, **kwargs) -> BenchmarkIndexSource:
        """Create a benchmark index source instance."""
        if name not in cls._indices:
            raise ValueError(f"Unknown benchmark index source: {name}")

        return cls._indices[name](**kwargs)

    @classmethod
    def list_indices(cls) -> List[str]:
        """List available benchmark index sources."""
        return list(cls._indices.keys())
