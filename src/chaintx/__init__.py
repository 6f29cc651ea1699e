"""
chaintx

Transaction construction and submission core for a blockchain client SDK.
Builds a signed transaction from a list of operations, submits it to a
node and optionally waits for the node to report the outcome.
"""

__version__ = "0.1.0"

from chaintx.errors import SdkError, SdkException
from chaintx.service import TransactionService
from chaintx.tx.transaction import Transaction, TransactionState

__all__ = [
    "SdkError",
    "SdkException",
    "Transaction",
    "TransactionService",
    "TransactionState",
]
