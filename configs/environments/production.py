"""
Production environment configuration.
"""

from typing import List

from pydantic_settings import SettingsConfigDict

from .base import BaseConfig


class ProductionConfig(BaseConfig):
    """Production configuration."""

    model_config = SettingsConfigDict(env_file=".env.production")

    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "json"

    # Longer cache for production
    cache_ttl_seconds: int = 600

    # Production logging
    log_to_file: bool = True
    log_dir: str = "/var/log/portfolio-ledger"

    def validate_production_requirements(self) -> List[str]:
        """Additional validation for production."""
        issues = self.validate_required_settings()

        if self.price_source == "static":
            issues.append("PRICE_SOURCE must not be 'static' in production")

        if self.oversell_policy != "reject":
            issues.append("OVERSELL_POLICY should be 'reject' in production")

        return issues
