"""
Application configuration.
"""

from .settings import get_settings, validate_settings

__all__ = ["get_settings", "validate_settings"]
