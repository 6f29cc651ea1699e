"""
Error codes and typed exceptions.

Every public-facing failure is an SdkException carrying a stable
error code and message.
"""

from enum import Enum
from typing import Optional, Union


class SdkError(Enum):
    """Stable (code, message) pairs for every failure the core reports."""

    TRANSACTION_ERROR_STATUS = (15001, "Transaction already finalized")
    TRANSACTION_ERROR_SPONSOR = (15002, "Sponsor address must not be empty")
    TRANSACTION_ERROR_BLOB_REPEAT_GENERATOR = (15003, "Transaction blob already generated")
    TRANSACTION_ERROR_OPERATOR_NOT_EMPTY = (15004, "Operation list must not be empty")
    TRANSACTION_ERROR_BLOB_NOT_NULL = (15005, "Transaction blob has not been generated")
    TRANSACTION_ERROR_SIGNATURE = (15006, "At least one signature or digest is required")
    TRANSACTION_ERROR_PUBLIC_KEY_NOT_EMPTY = (15007, "Signer public key must not be empty")
    TRANSACTION_ERROR_PRIVATE_KEY_NOT_EMPTY = (15008, "Signer private key must not be empty")
    TRANSACTION_ERROR_FEE_ILLEGAL = (15009, "Fee limit must be greater than zero")
    TRANSACTION_ERROR_GAS_ILLEGAL = (15010, "Gas price must be greater than zero")
    TRANSACTION_ERROR_TIMEOUT = (15011, "Transaction passed its final ledger sequence without a result")
    TRANSACTION_ERROR_WAIT_TIMEOUT = (15012, "Timed out waiting for the transaction result")
    TRANSACTION_ERROR_DUPLICATE_WAIT = (15013, "A wait is already registered for this transaction hash")
    SIGNATURE_ERROR_PUBLIC_PRIVATE = (15101, "Public/private key mismatch or invalid key material")
    EVENT_ERROR_SIGNATURE_VERIFY_FAIL = (15102, "Signature verification failed")
    RPC_ERROR_REQUEST_FAILED = (15201, "Node request failed")
    RPC_ERROR_BAD_RESPONSE = (15202, "Node returned an unexpected response")

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class SdkException(Exception):
    """
    Base class for all errors raised by the transaction core.

    Can be built from an SdkError member or from a raw code/message
    pair reported by the node.
    """

    def __init__(
        self,
        error: Union[SdkError, int],
        message: Optional[str] = None,
    ):
        if isinstance(error, SdkError):
            self.error_code = error.code
            self.error_message = message or error.message
        else:
            self.error_code = error
            self.error_message = message or ""
        super().__init__(f"[{self.error_code}] {self.error_message}")


class FinalizedStateError(SdkException):
    """Raised when a finalized transaction is mutated or committed again."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(SdkError.TRANSACTION_ERROR_STATUS, message)


class PreconditionError(SdkException):
    """Raised when a transaction is not ready for the requested step."""
    pass


class DuplicateWaitError(PreconditionError):
    """Raised when a second wait is registered for a hash that already has one."""

    def __init__(self, tx_hash: str):
        super().__init__(SdkError.TRANSACTION_ERROR_DUPLICATE_WAIT)
        self.tx_hash = tx_hash


class SignatureMaterialError(SdkException):
    """Raised when a signature cannot be produced from the given keys."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(SdkError.SIGNATURE_ERROR_PUBLIC_PRIVATE, message)


class SignatureVerificationError(SdkException):
    """Raised when a signature fails the local check before submission."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(SdkError.EVENT_ERROR_SIGNATURE_VERIFY_FAIL, message)


class TransportError(SdkException):
    """
    Raised when the node cannot be reached or answers badly.

    When the node rejected the request itself, the ChainRejectionError
    is attached as __cause__.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        error: SdkError = SdkError.RPC_ERROR_REQUEST_FAILED,
    ):
        super().__init__(error, message)


class ChainRejectionError(SdkException):
    """Raised with the error code and description reported by the chain."""
    pass


class RemoteTimeoutError(SdkException):
    """Raised when a synchronous commit exceeds its wall-clock bound."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(SdkError.TRANSACTION_ERROR_WAIT_TIMEOUT, message)


class LedgerDeadlineTimeoutError(SdkException):
    """Raised when the ledger passed the transaction's final sequence first."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(SdkError.TRANSACTION_ERROR_TIMEOUT, message)
