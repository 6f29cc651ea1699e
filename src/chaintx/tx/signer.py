"""
Transaction Signer - signs and verifies transaction blobs.

Keys are hex strings of raw ed25519 key material.
"""

import structlog
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey

from pycardano import PaymentSigningKey, PaymentVerificationKey

from chaintx.errors import SignatureMaterialError

logger = structlog.get_logger(__name__)


def public_key_for(private_key: str) -> str:
    """
    Derive the hex public key for a hex private key.

    Raises:
        SignatureMaterialError: If the private key is not valid key material
    """
    try:
        signing_key = PaymentSigningKey(bytes.fromhex(private_key))
        return PaymentVerificationKey.from_signing_key(signing_key).payload.hex()
    except (ValueError, TypeError, CryptoError) as e:
        raise SignatureMaterialError(f"Invalid private key: {e}") from e


def sign_blob(data: bytes, private_key: str, public_key: str) -> bytes:
    """
    Sign blob bytes with a key pair.

    Args:
        data: Canonical transaction bytes
        private_key: Hex private key
        public_key: Hex public key expected to belong to private_key

    Returns:
        Raw signature bytes

    Raises:
        SignatureMaterialError: On key mismatch or invalid key material
    """
    if public_key_for(private_key) != public_key.lower():
        logger.warning("signer_key_mismatch", public_key=public_key[:16] + "...")
        raise SignatureMaterialError()

    try:
        signing_key = PaymentSigningKey(bytes.fromhex(private_key))
        return signing_key.sign(data)
    except (ValueError, TypeError, CryptoError) as e:
        raise SignatureMaterialError(f"Signing failed: {e}") from e


def verify_signature(data: bytes, signature: bytes, public_key: str) -> bool:
    """Check a signature over data against a hex public key."""
    try:
        VerifyKey(bytes.fromhex(public_key)).verify(data, signature)
        return True
    except (BadSignatureError, ValueError, TypeError, CryptoError):
        return False
