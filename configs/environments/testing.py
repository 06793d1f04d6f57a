"""
Testing environment configuration.
"""

from pydantic_settings import SettingsConfigDict

from .base import BaseConfig


class TestingConfig(BaseConfig):
    """Testing configuration."""

    model_config = SettingsConfigDict(env_file=".env.testing")

    debug: bool = True
    log_level: str = "DEBUG"
    log_format: str = "text"
    log_to_file: bool = False

    # Deterministic collaborators
    price_source: str = "static"

    # Fast cache expiry for tests
    cache_ttl_seconds: int = 1
