"""
Transaction blob - the canonical bytes of a built transaction.
"""

from dataclasses import dataclass, field

from chaintx.hashing import HashType


@dataclass(frozen=True)
class TransactionBlob:
    """
    Immutable canonical encoding of a transaction plus its content hash.

    Attributes:
        bytes_: Canonical serialized transaction
        hash_type: Algorithm the chain uses for transaction hashes
        hash: Hex-encoded hash of bytes_, derived at construction
    """

    bytes_: bytes
    hash_type: HashType = HashType.SHA256
    hash: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "hash", self.hash_type.digest(self.bytes_).hex())

    @property
    def hex(self) -> str:
        """Get the blob bytes as hex."""
        return self.bytes_.hex()

    @classmethod
    def from_hex(cls, blob_hex: str, hash_type: HashType = HashType.SHA256) -> "TransactionBlob":
        return cls(bytes.fromhex(blob_hex), HashType(hash_type))

    def __len__(self) -> int:
        return len(self.bytes_)
