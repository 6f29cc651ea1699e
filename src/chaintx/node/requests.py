"""
Submission wire payload.

{"items": [{"transaction_blob": hex, "signatures": [{"sign_data": hex, "public_key": hex}]}]}
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class SignatureRequest:
    public_key: str
    sign_data: str

    def to_dict(self) -> dict:
        return {"sign_data": self.sign_data, "public_key": self.public_key}


@dataclass
class TransactionRequest:
    transaction_blob: str
    signatures: List[SignatureRequest] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "transaction_blob": self.transaction_blob,
            "signatures": [s.to_dict() for s in self.signatures],
        }


@dataclass
class SubTransactionRequest:
    """Body of a submitTransaction call."""
    items: List[TransactionRequest] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"items": [item.to_dict() for item in self.items]}
