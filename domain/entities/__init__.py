"""
Domain entities - Core business objects with identity.
"""

from .transaction import Transaction, TransactionType, TransactionStatus
from .asset_position import AssetPosition
from .snapshot import AssetPnL, PortfolioSnapshot

__all__ = [
    "Transaction", "TransactionType", "TransactionStatus",
    "AssetPosition", "AssetPnL", "PortfolioSnapshot"
]
