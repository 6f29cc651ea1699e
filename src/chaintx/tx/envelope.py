"""
Transaction envelope and the operation contract.

The envelope is the canonical form of a transaction before signing.
Operations fold themselves into it in list order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from pycardano.serialization import MapCBORSerializable


@dataclass(repr=False)
class TransactionEnvelope(MapCBORSerializable):
    """
    Canonical transaction envelope, serialized as a CBOR map.

    Optional fields are left out of the encoding when unset so that
    the same inputs always produce the same bytes.
    """

    source_address: str = field(default="", metadata={"key": 0})
    nonce: int = field(default=0, metadata={"key": 1})
    fee_limit: int = field(default=0, metadata={"key": 2})
    gas_price: int = field(default=0, metadata={"key": 3})
    operations: list = field(default_factory=list, metadata={"key": 4})
    metadata: Optional[bytes] = field(
        default=None, metadata={"key": 5, "optional": True}
    )
    ceil_ledger_seq: Optional[int] = field(
        default=None, metadata={"key": 6, "optional": True}
    )

    def add_operation(self, operation: Any) -> None:
        """Append one encoded operation."""
        self.operations.append(operation)


class Operation(ABC):
    """
    Abstract base class for anything that can be placed in a transaction.

    Concrete operation types live outside the transaction core.
    """

    @abstractmethod
    def build_transaction(self, envelope: TransactionEnvelope, specified_seq: int) -> None:
        """
        Contribute this operation's encoded form to the envelope.

        Args:
            envelope: Envelope being built
            specified_seq: Ledger sequence by which the transaction must
                be settled; operations may embed their own deadline from it
        """
        pass


@dataclass
class RawOperation(Operation):
    """
    Operation whose body was already encoded by the caller.

    Attributes:
        type_code: Chain operation type identifier
        body: Pre-encoded operation body
        source_address: Operation source, when it differs from the sponsor
    """

    type_code: int
    body: bytes = b""
    source_address: Optional[str] = None

    def build_transaction(self, envelope: TransactionEnvelope, specified_seq: int) -> None:
        encoded = {"type": self.type_code, "body": self.body}
        if self.source_address:
            encoded["source_address"] = self.source_address
        envelope.add_operation(encoded)
