"""
Portfolio tracking module.

This module turns a stream of transactions into:
- Weighted-average cost-basis positions (Ledger)
- Append-only portfolio snapshots (SnapshotStore)
- Performance, risk and benchmark analytics
- A service facade serializing writes per user (PortfolioService)
"""

# Accounting
from .ledger import Ledger, OversellPolicy

# Snapshots
from .snapshot_store import SnapshotStore, PortfolioSummary

# Analytics
from .performance_analytics import PerformanceAnalyzer, PerformanceMetrics
from .risk_analytics import RiskAnalyzer, RiskMetrics
from .benchmark import BenchmarkComparator, BenchmarkComparison, compare_series

# Concurrency and caching
from .metrics_cache import MetricsCache
from .user_locks import UserLockRegistry

# Facade
from .portfolio_service import PortfolioService

__all__ = [
    "Ledger", "OversellPolicy",
    "SnapshotStore", "PortfolioSummary",
    "PerformanceAnalyzer", "PerformanceMetrics",
    "RiskAnalyzer", "RiskMetrics",
    "BenchmarkComparator", "BenchmarkComparison", "compare_series",
    "MetricsCache", "UserLockRegistry",
    "PortfolioService"
]
