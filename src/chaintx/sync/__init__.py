"""
Result correlation for submitted transactions.
"""

from chaintx.sync.future import AsyncFutureTx, TransactionSyncManager
from chaintx.sync.fail import TxFailManager

__all__ = [
    "AsyncFutureTx",
    "TransactionSyncManager",
    "TxFailManager",
]
