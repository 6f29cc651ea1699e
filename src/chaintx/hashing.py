"""
Hash algorithms a chain may advertise for transaction hashes.
"""

import hashlib
from enum import Enum


class HashType(str, Enum):
    """Supported transaction hash algorithms."""
    SHA256 = "sha256"
    BLAKE2B_256 = "blake2b_256"

    def digest(self, data: bytes) -> bytes:
        """Hash data with this algorithm."""
        if self is HashType.BLAKE2B_256:
            return hashlib.blake2b(data, digest_size=32).digest()
        return hashlib.sha256(data).digest()
