"""
Unit tests for settings and service wiring.
"""

import pytest
from decimal import Decimal

from configs.environments import development, production, testing as testing_env
from configs.settings import get_config_class, validate_settings
from infrastructure.container import Container, build_container
from infrastructure.providers import StaticBenchmarkIndex, StaticPriceSource, YFinancePriceSource
from portfolio_tracking import Ledger, MetricsCache, OversellPolicy, PortfolioService


class TestSettings:

    def test_defaults(self, test_settings):
        assert test_settings.risk_free_rate == 0.05
        assert test_settings.default_window_days == 30
        assert test_settings.default_benchmark == "CRYPTO_INDEX"
        assert test_settings.oversell_policy == "reject"
        assert test_settings.price_source == "static"
        assert test_settings.cache_ttl_seconds == 1
        assert test_settings.benchmark_tickers["CRYPTO_INDEX"] == "BTC-USD"
        assert test_settings.liquidity_scores["SAMO"] == 0.2

    def test_environment_ttls(self):
        assert development.DevelopmentConfig(_env_file=None).cache_ttl_seconds == 60
        assert production.ProductionConfig(_env_file=None).cache_ttl_seconds == 600

    def test_environment_variables_override(self, monkeypatch):
        monkeypatch.setenv("OVERSELL_POLICY", "CLAMP")
        monkeypatch.setenv("RISK_FREE_RATE", "0.04")
        settings = testing_env.TestingConfig(_env_file=None)

        assert settings.oversell_policy == "clamp"
        assert settings.risk_free_rate == 0.04

    def test_invalid_oversell_policy(self):
        with pytest.raises(ValueError, match="oversell_policy"):
            testing_env.TestingConfig(_env_file=None, oversell_policy="ignore")

    def test_invalid_confidence_level(self):
        with pytest.raises(ValueError, match="between 0 and 1"):
            testing_env.TestingConfig(_env_file=None, var_confidence_levels=[0.95, 1.0])

    @pytest.mark.parametrize("environment, expected", [
        ("production", production.ProductionConfig),
        ("TEST", testing_env.TestingConfig),
        ("staging", development.DevelopmentConfig),
    ])
    def test_config_class_from_environment(self, monkeypatch, environment, expected):
        monkeypatch.setenv("ENVIRONMENT", environment)
        assert get_config_class() is expected

    def test_http_source_requires_url(self):
        settings = testing_env.TestingConfig(_env_file=None, price_source="HTTP")
        assert settings.validate_required_settings() == ["PRICE_API_URL"]
        assert not validate_settings(settings)

    def test_production_rejects_static_prices(self):
        settings = production.ProductionConfig(_env_file=None, price_source="static")
        issues = settings.validate_production_requirements()
        assert any("static" in issue for issue in issues)
        assert not validate_settings(settings)

    def test_valid_settings(self, test_settings):
        assert validate_settings(test_settings)


class TestContainer:

    def test_resolves_dependencies_by_name(self):
        container = Container()
        container.register("oversell_policy", "clamp")
        container.register_singleton("ledger", lambda oversell_policy: Ledger(oversell_policy))

        ledger = container.get("ledger")
        assert ledger.oversell_policy is OversellPolicy.CLAMP
        assert container.get("ledger") is ledger

    def test_unknown_service(self):
        with pytest.raises(ValueError, match="not found"):
            Container().get("missing")

    def test_unresolvable_dependency(self):
        container = Container()
        container.register_factory("thing", lambda collaborator: collaborator)
        with pytest.raises(ValueError, match="collaborator"):
            container.get("thing")

    def test_build_container_from_testing_settings(self, test_settings, clock):
        container = build_container(test_settings, clock=clock)

        service = container.get("portfolio_service")
        assert isinstance(service, PortfolioService)
        assert service is container.get("portfolio_service")
        assert isinstance(container.get("price_source"), StaticPriceSource)
        assert isinstance(container.get("benchmark_index"), StaticBenchmarkIndex)
        assert isinstance(container.get("cache"), MetricsCache)
        assert service.ledger is container.get("ledger")
        assert service.risk_free_rate == Decimal("0.05")
        assert service.default_benchmark == "CRYPTO_INDEX"

    def test_yfinance_source_from_settings(self, clock):
        settings = testing_env.TestingConfig(_env_file=None, price_source="yfinance")
        source = build_container(settings, clock=clock).get("price_source")

        assert isinstance(source, YFinancePriceSource)
        assert source.ticker_for("mSOL") == "MSOL-USD"

    def test_overrides_replace_services(self, test_settings, clock, price_source, benchmark_index, buy):
        container = build_container(
            test_settings, clock=clock, price_source=price_source, benchmark_index=benchmark_index
        )
        service = container.get("portfolio_service")

        service.record_transaction(buy("SOL", 2, 90))
        snapshot = service.get_portfolio_history("user-1")[-1]

        assert snapshot.total_value.amount == Decimal("200")
        assert service.available_benchmarks() == ["CRYPTO_INDEX", "SOL"]
