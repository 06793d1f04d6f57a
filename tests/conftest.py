"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from configs.environments.testing import TestingConfig
from domain.entities import PortfolioSnapshot, Transaction, TransactionType
from domain.value_objects import Money
from infrastructure.providers import StaticPriceSource, StaticBenchmarkIndex
from infrastructure.storage import InMemoryPortfolioStore
from portfolio_tracking import Ledger, MetricsCache, PortfolioService, UserLockRegistry


START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return TestingConfig(_env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def price_source() -> StaticPriceSource:
    """Deterministic prices."""
    return StaticPriceSource({"SOL": "100", "USDC": "1", "RAY": "2"})


@pytest.fixture
def benchmark_index() -> StaticBenchmarkIndex:
    """Deterministic benchmark series."""
    return StaticBenchmarkIndex(
        series={
            "CRYPTO_INDEX": ["0.01", "-0.02", "0.03", "0.01", "-0.01"],
            "SOL": ["0.02", "-0.03", "0.04", "0.00", "0.01"],
        },
        names={"CRYPTO_INDEX": "Crypto Market Index", "SOL": "Solana"}
    )


@pytest.fixture
def store() -> InMemoryPortfolioStore:
    return InMemoryPortfolioStore()


@pytest.fixture
def ledger() -> Ledger:
    return Ledger()


@pytest.fixture
def service(ledger, price_source, benchmark_index, store, clock) -> PortfolioService:
    """Service wired with deterministic collaborators."""
    return PortfolioService(
        ledger=ledger,
        price_source=price_source,
        benchmark_index=benchmark_index,
        store=store,
        risk_free_rate=Decimal("0.05"),
        default_window_days=30,
        default_benchmark="CRYPTO_INDEX",
        cache=MetricsCache(ttl_seconds=300, clock=clock),
        correlation_matrix={"SOL": {"USDC": 0.1, "RAY": 0.8}},
        liquidity_scores={"SOL": 0.9, "USDC": 1.0},
        locks=UserLockRegistry(),
        clock=clock
    )


@pytest.fixture
def make_tx():
    """Factory for transactions with sensible defaults."""
    counter = {'n': 0}

    def _make(tx_type="buy", user_id="user-1", **fields):
        counter['n'] += 1
        defaults = {
            'from_token': "",
            'to_token': "",
            'from_amount': 0,
            'to_amount': 0,
            'unit_price': 0,
            'timestamp': START + timedelta(minutes=counter['n']),
        }
        defaults.update(fields)
        return Transaction(user_id=user_id, type=TransactionType.parse(tx_type), **defaults)

    return _make


@pytest.fixture
def buy(make_tx):
    """Buy ``quantity`` of ``symbol`` at ``price`` paid in USDC."""
    def _buy(symbol, quantity, price, user_id="user-1", **fields):
        quantity = Decimal(str(quantity))
        price = Decimal(str(price))
        return make_tx(
            "buy", user_id=user_id, from_token="USDC", to_token=symbol,
            from_amount=quantity * price, to_amount=quantity, unit_price=price, **fields
        )
    return _buy


@pytest.fixture
def sell(make_tx):
    """Sell ``quantity`` of ``symbol`` at ``price`` for USDC."""
    def _sell(symbol, quantity, price, user_id="user-1", **fields):
        quantity = Decimal(str(quantity))
        price = Decimal(str(price))
        return make_tx(
            "sell", user_id=user_id, from_token=symbol, to_token="USDC",
            from_amount=quantity, to_amount=quantity * price, unit_price=price, **fields
        )
    return _sell


@pytest.fixture
def make_snapshots():
    """Build a daily snapshot series from portfolio values."""
    def _make(values, user_id="user-1", start=START, step=timedelta(days=1)):
        return [
            PortfolioSnapshot(
                user_id=user_id,
                timestamp=start + step * i,
                total_value=Money(value),
                total_invested=Money(values[0]),
                total_pnl=Money(Decimal(str(value)) - Decimal(str(values[0]))),
                pnl_percentage=Decimal("0")
            )
            for i, value in enumerate(values)
        ]
    return _make
