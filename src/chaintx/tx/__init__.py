"""
Transaction module.

Handles transaction construction, signing, and submission.
"""

from chaintx.tx.blob import TransactionBlob
from chaintx.tx.envelope import Operation, RawOperation, TransactionEnvelope
from chaintx.tx.models import (
    Digest,
    Signature,
    SponsorAccount,
    TransactionCommittedResult,
    TransactionSerializable,
)
from chaintx.tx.transaction import Transaction, TransactionState

__all__ = [
    "Digest",
    "Operation",
    "RawOperation",
    "Signature",
    "SponsorAccount",
    "Transaction",
    "TransactionBlob",
    "TransactionCommittedResult",
    "TransactionEnvelope",
    "TransactionSerializable",
    "TransactionState",
]
