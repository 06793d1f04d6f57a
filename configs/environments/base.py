"""
Base configuration settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Dict


DEFAULT_BENCHMARK_TICKERS: Dict[str, str] = {
    "SOL": "SOL-USD",
    "BTC": "BTC-USD",
    "SPY": "SPY",
    "CRYPTO_INDEX": "BTC-USD",
    "DEFI_INDEX": "UNI7083-USD",
    "SOLANA_DEFI_INDEX": "RAY-USD",
    "SOLANA_ECOSYSTEM": "SOL-USD",
}

DEFAULT_BENCHMARK_NAMES: Dict[str, str] = {
    "SOL": "Solana",
    "BTC": "Bitcoin",
    "SPY": "S&P 500",
    "CRYPTO_INDEX": "Crypto Market Index",
    "DEFI_INDEX": "DeFi Index",
    "SOLANA_DEFI_INDEX": "Solana DeFi Index",
    "SOLANA_ECOSYSTEM": "Solana Ecosystem",
}

DEFAULT_PRICE_TICKERS: Dict[str, str] = {
    "SOL": "SOL-USD",
    "BTC": "BTC-USD",
    "ETH": "ETH-USD",
    "USDC": "USDC-USD",
    "mSOL": "MSOL-USD",
    "RAY": "RAY-USD",
    "ORCA": "ORCA-USD",
    "SRM": "SRM-USD",
    "FIDA": "FIDA-USD",
    "SAMO": "SAMO-USD",
}

DEFAULT_LIQUIDITY_SCORES: Dict[str, float] = {
    "SOL": 0.9,
    "USDC": 1.0,
    "mSOL": 0.7,
    "RAY": 0.6,
    "ORCA": 0.5,
    "SRM": 0.4,
    "FIDA": 0.3,
    "SAMO": 0.2,
}

DEFAULT_CORRELATION_MATRIX: Dict[str, Dict[str, float]] = {
    "SOL": {"SOL": 1.0, "mSOL": 0.95, "RAY": 0.8, "ORCA": 0.7, "USDC": 0.1},
    "mSOL": {"SOL": 0.95, "mSOL": 1.0, "RAY": 0.75, "ORCA": 0.65, "USDC": 0.1},
    "RAY": {"SOL": 0.8, "mSOL": 0.75, "RAY": 1.0, "ORCA": 0.85, "USDC": 0.15},
    "ORCA": {"SOL": 0.7, "mSOL": 0.65, "RAY": 0.85, "ORCA": 1.0, "USDC": 0.15},
    "USDC": {"SOL": 0.1, "mSOL": 0.1, "RAY": 0.15, "ORCA": 0.15, "USDC": 1.0},
}


class BaseConfig(BaseSettings):
    """Base configuration for all environments."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Portfolio Ledger"
    app_version: str = "1.0.0"
    debug: bool = False

    # Accounting
    oversell_policy: str = "reject"
    default_currency: str = "USD"

    # Analytics
    risk_free_rate: float = 0.05
    default_window_days: int = 30
    var_confidence_levels: List[float] = Field(default_factory=lambda: [0.95, 0.99])
    cache_ttl_seconds: int = 300

    # Benchmarks
    default_benchmark: str = "CRYPTO_INDEX"
    benchmark_tickers: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_BENCHMARK_TICKERS)
    )
    benchmark_names: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_BENCHMARK_NAMES)
    )

    # Prices
    price_source: str = "yfinance"
    price_api_url: Optional[str] = None
    price_timeout_seconds: float = 10.0
    price_tickers: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PRICE_TICKERS))

    # Risk
    liquidity_scores: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_LIQUIDITY_SCORES)
    )
    default_liquidity_score: float = 0.5
    correlation_matrix: Dict[str, Dict[str, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_CORRELATION_MATRIX.items()}
    )
    default_correlation: float = 0.5

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_dir: str = "logs"
    log_to_file: bool = False

    @field_validator("oversell_policy")
    @classmethod
    def _check_oversell_policy(cls, value: str) -> str:
        value = value.lower()
        if value not in ("reject", "clamp"):
            raise ValueError("oversell_policy must be 'reject' or 'clamp'")
        return value

    @field_validator("var_confidence_levels")
    @classmethod
    def _check_confidence_levels(cls, value: List[float]) -> List[float]:
        for level in value:
            if not 0 < level < 1:
                raise ValueError(f"Confidence level must be between 0 and 1, got {level}")
        return sorted(value)

    @field_validator("price_source")
    @classmethod
    def _check_price_source(cls, value: str) -> str:
        return value.lower()

    def validate_required_settings(self) -> List[str]:
        """Validate that the selected collaborators are configured."""
        missing = []

        if self.price_source == "http" and not self.price_api_url:
            missing.append("PRICE_API_URL")

        if self.default_benchmark not in self.benchmark_tickers:
            missing.append(f"benchmark ticker for {self.default_benchmark}")

        return missing
