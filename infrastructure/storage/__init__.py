"""
Persistence store implementations.
"""

from .memory_store import InMemoryPortfolioStore

__all__ = ['InMemoryPortfolioStore']
