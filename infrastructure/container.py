"""
Dependency injection container.
"""

from typing import Dict, Any, Callable, Optional
import inspect

from configs.environments.base import BaseConfig
from infrastructure.interfaces import BenchmarkIndexFactory, PriceSourceFactory
from infrastructure.storage import InMemoryPortfolioStore
from portfolio_tracking import (
    Ledger, MetricsCache, PortfolioService, RiskAnalyzer, UserLockRegistry
)
from utils.logging import LogConfig, get_logger, setup_logging

# Importing the providers package registers the sources with the factories
import infrastructure.providers  # noqa: F401

logger = get_logger(__name__)


class Container:
    """Simple dependency injection container."""

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}

    def register(self, name: str, service: Any) -> None:
        """Register a service instance."""
        self._services[name] = service

    def register_factory(self, name: str, factory: Callable) -> None:
        """Register a factory function for a service."""
        self._factories[name] = factory

    def register_singleton(self, name: str, factory: Callable) -> None:
        """Register a singleton service with factory."""
        self._factories[name] = factory
        self._singletons[name] = None

    def has(self, name: str) -> bool:
        return name in self._services or name in self._factories

    def get(self, name: str) -> Any:
        """Get a service by name."""
        if name in self._services:
            return self._services[name]

        if name in self._singletons:
            if self._singletons[name] is None:
                factory = self._factories[name]
                self._singletons[name] = self._create_instance(factory)
            return self._singletons[name]

        if name in self._factories:
            factory = self._factories[name]
            return self._create_instance(factory)

        raise ValueError(f"Service '{name}' not found")

    def _create_instance(self, factory: Callable) -> Any:
        """Create an instance, resolving parameters by name."""
        sig = inspect.signature(factory)
        kwargs = {}

        for param_name, param in sig.parameters.items():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if self.has(param_name):
                kwargs[param_name] = self.get(param_name)
            elif param.default is inspect.Parameter.empty:
                raise ValueError(
                    f"Cannot resolve dependency '{param_name}' "
                    f"for factory {getattr(factory, '__name__', factory)}"
                )

        return factory(**kwargs)


def _price_source_kwargs(settings: BaseConfig) -> Dict[str, Any]:
    if settings.price_source == "yfinance":
        return {'tickers': settings.price_tickers, 'timeout': settings.price_timeout_seconds}
    if settings.price_source == "http":
        return {'base_url': settings.price_api_url, 'timeout': settings.price_timeout_seconds}
    return {}


def _benchmark_kwargs(settings: BaseConfig) -> Dict[str, Any]:
    if settings.price_source == "static":
        return {'names': settings.benchmark_names}
    return {
        'tickers': settings.benchmark_tickers,
        'names': settings.benchmark_names,
        'timeout': settings.price_timeout_seconds
    }


def build_container(settings: BaseConfig, clock: Optional[Callable] = None,
                    configure_logging: bool = False, **overrides) -> Container:
    """
    Wire the engine from settings.

    With ``configure_logging`` the root logger is set up from the logging
    section of the settings as well.

    Any service can be replaced by passing it by name, e.g.
    ``build_container(settings, store=my_store)``.
    """
    if configure_logging:
        setup_logging(LogConfig.from_settings(settings))

    container = Container()
    container.register("settings", settings)
    container.register("clock", clock)

    index_name = "static" if settings.price_source == "static" else "yfinance"

    container.register_singleton(
        "price_source",
        lambda settings: PriceSourceFactory.create(
            settings.price_source, **_price_source_kwargs(settings)
        )
    )
    container.register_singleton(
        "benchmark_index",
        lambda settings: BenchmarkIndexFactory.create(index_name, **_benchmark_kwargs(settings))
    )
    container.register_singleton("store", InMemoryPortfolioStore)
    container.register_singleton("locks", UserLockRegistry)
    container.register_singleton(
        "ledger", lambda settings: Ledger(oversell_policy=settings.oversell_policy)
    )
    container.register_singleton(
        "cache", lambda settings, clock: MetricsCache(settings.cache_ttl_seconds, clock=clock)
    )
    container.register_singleton(
        "risk_analyzer",
        lambda settings: RiskAnalyzer(
            confidence_levels=settings.var_confidence_levels,
            default_liquidity_score=settings.default_liquidity_score,
            default_correlation=settings.default_correlation
        )
    )
    container.register_singleton(
        "portfolio_service",
        lambda settings, ledger, price_source, benchmark_index, store, cache, risk_analyzer, locks, clock:
            PortfolioService(
                ledger=ledger,
                price_source=price_source,
                benchmark_index=benchmark_index,
                store=store,
                risk_free_rate=settings.risk_free_rate,
                default_window_days=settings.default_window_days,
                default_benchmark=settings.default_benchmark,
                cache=cache,
                correlation_matrix=settings.correlation_matrix,
                liquidity_scores=settings.liquidity_scores,
                risk_analyzer=risk_analyzer,
                locks=locks,
                clock=clock
            )
    )

    for name, service in overrides.items():
        container.register(name, service)

    logger.info(f"Container built for price source '{settings.price_source}'")
    return container
