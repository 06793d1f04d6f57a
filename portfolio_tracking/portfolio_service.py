"""
Public entry point of the portfolio ledger and analytics engine.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from decimal import Decimal
from datetime import datetime

from domain.entities import AssetPosition, PortfolioSnapshot, Transaction
from domain.exceptions import PersistenceFailure, PriceSourceError
from domain.value_objects import to_decimal
from infrastructure.interfaces import BenchmarkIndexSource, PortfolioStore, PriceSource
from utils.logging import (
    get_logger, get_enhanced_logger, LogCategory, set_correlation_id, clear_correlation_id
)
from .benchmark import BenchmarkComparator, BenchmarkComparison
from .ledger import Ledger
from .metrics_cache import MetricsCache, utc_now
from .performance_analytics import PerformanceAnalyzer, PerformanceMetrics
from .risk_analytics import RiskAnalyzer, RiskMetrics
from .snapshot_store import PortfolioSummary, SnapshotStore
from .user_locks import UserLockRegistry

logger = get_logger(__name__)
audit_logger = get_enhanced_logger(__name__, LogCategory.AUDIT)


class PortfolioService:
    """
    Records transactions and serves positions, history and metrics.

    All collaborators are injected. Writes for one user are serialized by
    that user's lock; analytics run on immutable snapshot slices.
    """

    def __init__(
        self,
        ledger: Ledger,
        price_source: PriceSource,
        benchmark_index: BenchmarkIndexSource,
        store: PortfolioStore,
        risk_free_rate=Decimal('0.05'),
        default_window_days: int = 30,
        default_benchmark: str = "CRYPTO_INDEX",
        cache: Optional[MetricsCache] = None,
        correlation_matrix: Optional[Mapping[str, Mapping[str, Any]]] = None,
        liquidity_scores: Optional[Mapping[str, Any]] = None,
        performance_analyzer: Optional[PerformanceAnalyzer] = None,
        risk_analyzer: Optional[RiskAnalyzer] = None,
        locks: Optional[UserLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.ledger = ledger
        self.price_source = price_source
        self.benchmark_index = benchmark_index
        self.store = store

        self.risk_free_rate = to_decimal(risk_free_rate)
        self.default_window_days = default_window_days
        self.default_benchmark = default_benchmark
        self.correlation_matrix = dict(correlation_matrix or {})
        self.liquidity_scores = dict(liquidity_scores or {})

        self.cache = cache or MetricsCache()
        self.locks = locks or UserLockRegistry()
        self._clock = clock or utc_now

        self.performance_analyzer = performance_analyzer or PerformanceAnalyzer()
        self.risk_analyzer = risk_analyzer or RiskAnalyzer()
        self.snapshots = SnapshotStore(
            ledger, price_source, store, locks=self.locks, clock=self._clock
        )
        self.comparator = BenchmarkComparator(
            self.get_portfolio_history, benchmark_index, self.risk_free_rate
        )

        logger.info("PortfolioService initialized")

    # Writes

    def record_transaction(self, transaction: Union[Transaction, Dict[str, Any]]) -> Transaction:
        """
        Persist a transaction and apply it to the ledger.

        The ledger is evaluated first so an invalid transaction is rejected
        before anything is written; a store failure leaves the ledger
        untouched. Confirmed transactions are followed by a snapshot; if
        only that snapshot cannot be stored, the failure is logged and the
        recorded transaction is still returned.

        Raises:
            InvalidTransaction, InvalidTransactionType, InsufficientQuantity,
            PersistenceFailure
        """
        if not isinstance(transaction, Transaction):
            transaction = Transaction.from_dict(transaction)

        user_id = transaction.user_id
        set_correlation_id(transaction.id)
        try:
            with self.locks.hold(user_id):
                positions = self.ledger.evaluate(transaction)

                try:
                    self.store.append_transaction(transaction)
                except PersistenceFailure as e:
                    audit_logger.log_error_with_context(
                        e, {'transaction_id': transaction.id, 'user_id': user_id}
                    )
                    raise

                if positions:
                    self.ledger.commit(user_id, positions)
                self.cache.invalidate_user(user_id)

                audit_logger.audit(
                    f"Recorded {transaction.status.value} {transaction.type.value} "
                    f"transaction {transaction.id} for {user_id}",
                    portfolio_context=transaction.to_dict()
                )
                for position in positions:
                    audit_logger.log_transaction(
                        transaction_id=transaction.id,
                        transaction_type=transaction.type.value,
                        symbol=position.symbol,
                        quantity=position.quantity.value,
                        price=position.weighted_average_price.value,
                        user_id=user_id
                    )

                if transaction.is_confirmed:
                    self._snapshot_after_write(transaction)
        finally:
            clear_correlation_id()

        return transaction

    def _snapshot_after_write(self, transaction: Transaction) -> Optional[PortfolioSnapshot]:
        """
        Snapshot following a recorded transaction.

        The transaction is already stored and applied at this point, so a
        store failure here is logged and the write still succeeds; the next
        snapshot picks the positions up.
        """
        try:
            return self.snapshots.create_snapshot(transaction.user_id)
        except PersistenceFailure as e:
            audit_logger.log_error_with_context(
                e,
                {
                    'transaction_id': transaction.id,
                    'user_id': transaction.user_id,
                    'transaction_committed': True,
                    'snapshot_recorded': False
                },
                severity="warning"
            )
            return None

    def create_snapshot(self, user_id: str) -> PortfolioSnapshot:
        with self.locks.hold(user_id):
            snapshot = self.snapshots.create_snapshot(user_id)
            self.cache.invalidate_user(user_id)
        return snapshot

    def load_user(self, user_id: str) -> Dict[str, AssetPosition]:
        """Rebuild a user's positions from the stored transaction log."""
        with self.locks.hold(user_id):
            history = list(reversed(self.store.query_transactions(user_id)))
            positions = self.ledger.replay(user_id, history)
            self.cache.invalidate_user(user_id)
        return positions

    # Reads

    def get_current_positions(self, user_id: str) -> Dict[str, AssetPosition]:
        with self.locks.hold(user_id):
            return self.ledger.get_positions(user_id)

    def get_portfolio_history(self, user_id: str, days: Optional[int] = None) -> Tuple[PortfolioSnapshot, ...]:
        return self.snapshots.get_history(user_id, self._window(days))

    def get_transaction_history(self, user_id: str, limit: Optional[int] = 50) -> Sequence[Transaction]:
        """Most recent transactions first."""
        return self.store.query_transactions(user_id, limit)

    def get_portfolio_summary(self, user_id: str) -> PortfolioSummary:
        return self.snapshots.get_portfolio_summary(user_id)

    def available_benchmarks(self) -> List[str]:
        return self.comparator.available_benchmarks()

    # Analytics

    def calculate_performance_metrics(self, user_id: str, days: Optional[int] = None,
                                      benchmark_symbol: Optional[str] = None) -> PerformanceMetrics:
        """
        Raises:
            InsufficientDataError: fewer than two snapshots in the window
            UnknownBenchmarkError: benchmark symbol not registered
        """
        window = self._window(days)
        benchmark = benchmark_symbol or self.default_benchmark
        key = MetricsCache.key(user_id, "performance", window, benchmark)

        def compute() -> PerformanceMetrics:
            history = self.get_portfolio_history(user_id, window)
            benchmark_returns = self._benchmark_returns(benchmark, window) if len(history) > 1 else []
            return self.performance_analyzer.compute(
                history, self.risk_free_rate, benchmark_returns, period_days=window
            )

        return self.cache.get_or_compute(key, compute)

    def calculate_risk_metrics(self, user_id: str, days: Optional[int] = None) -> RiskMetrics:
        """
        Risk of the return series in the window and of the holdings in the
        latest snapshot.

        Raises:
            InsufficientDataError: fewer than two snapshots in the window
        """
        window = self._window(days)
        key = MetricsCache.key(user_id, "risk", window, self.default_benchmark)

        def compute() -> RiskMetrics:
            history = self.get_portfolio_history(user_id, window)
            positions = history[-1].asset_breakdown if history else {}
            benchmark_returns = []
            if len(history) > 1 and self.benchmark_index.is_registered(self.default_benchmark):
                benchmark_returns = self._benchmark_returns(self.default_benchmark, window)
            return self.risk_analyzer.compute(
                history,
                positions,
                self.correlation_matrix,
                liquidity_scores=self.liquidity_scores,
                benchmark_returns=benchmark_returns,
                calculation_time=self._clock()
            )

        return self.cache.get_or_compute(key, compute)

    def compare_to_benchmark(self, user_id: str, benchmark_symbol: Optional[str] = None,
                             days: Optional[int] = None) -> BenchmarkComparison:
        """
        Raises:
            UnknownBenchmarkError: benchmark symbol not registered
            InsufficientDataError: fewer than two snapshots in the window
        """
        window = self._window(days)
        benchmark = benchmark_symbol or self.default_benchmark
        key = MetricsCache.key(user_id, "benchmark", window, benchmark)
        return self.cache.get_or_compute(
            key, lambda: self.comparator.compare(user_id, benchmark, window)
        )

    def _window(self, days: Optional[int]) -> int:
        if days is None:
            return self.default_window_days
        if days <= 0:
            raise ValueError(f"Window must be a positive number of days, got {days}")
        return days

    def _benchmark_returns(self, symbol: str, window: int) -> List[Decimal]:
        """Benchmark series; a failed fetch degrades to no benchmark."""
        try:
            return self.benchmark_index.get_returns(symbol, window)
        except PriceSourceError as e:
            logger.warning(f"Benchmark {symbol} unavailable, metrics computed without it: {e}")
            return []
