"""
Transaction value objects.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from chaintx.hashing import HashType
from chaintx.tx.blob import TransactionBlob


@dataclass(frozen=True)
class Signature:
    """Key pair used to sign the blob at submission time."""
    public_key: str
    private_key: str


@dataclass(frozen=True)
class Digest:
    """
    Signature produced outside this process (e.g. a hardware signer).

    Carried to the node verbatim, hex-encoded.
    """
    public_key: str
    origin_digest: bytes


@dataclass(frozen=True)
class SponsorAccount:
    """Account that initiates and pays for transactions."""
    address: str
    public_key: str
    private_key: str


@dataclass
class TransactionCommittedResult:
    """
    Outcome of a commit.

    Attributes:
        hash: Hash of the submitted transaction
        success: True once confirmed; None when committed asynchronously
        error_code: Result code reported by the node (sync mode only)
        error_message: Result description reported by the node
    """
    hash: Optional[str] = None
    success: Optional[bool] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None


@dataclass
class TransactionSerializable:
    """
    A generated transaction handed out for external signing.

    Holds what is needed to continue and submit the transaction later.
    """
    sponsor_address: str
    transaction_blob: TransactionBlob
    signatures: List[Signature] = field(default_factory=list)
    fee_limit: int = 0
    gas_price: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "sponsor_address": self.sponsor_address,
            "transaction_blob": self.transaction_blob.hex,
            "hash_type": self.transaction_blob.hash_type.value,
            "signatures": [
                {"public_key": s.public_key, "private_key": s.private_key}
                for s in self.signatures
            ],
            "fee_limit": self.fee_limit,
            "gas_price": self.gas_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TransactionSerializable":
        return cls(
            sponsor_address=data.get("sponsor_address", ""),
            transaction_blob=TransactionBlob.from_hex(
                data["transaction_blob"],
                HashType(data.get("hash_type", HashType.SHA256.value)),
            ),
            signatures=[
                Signature(s["public_key"], s["private_key"])
                for s in data.get("signatures", [])
            ],
            fee_limit=int(data.get("fee_limit", 0)),
            gas_price=int(data.get("gas_price", 0)),
        )
