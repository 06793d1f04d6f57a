"""
Shared utilities for the portfolio ledger.

This module provides common functionality used across the packages:
- Structured logging (categories, correlation ids, performance timing)
"""

__version__ = "1.0.0"
