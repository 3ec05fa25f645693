"""
Signer/Verifier — ed25519 signatures over canonical record bytes.

verify() fails closed: malformed keys, wrong lengths and bad signatures all
return False so the caller can raise a single SignatureInvalid.
"""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from hashmap import PUBLIC_KEY_SIZE, SIGNATURE_SIZE
from hashmap.codec import b64decode
from hashmap.errors import EncodingError
from hashmap.identity import load_signing_key


def sign(private_key: str, message: bytes) -> bytes:
    """Sign message bytes. Returns the 64-byte detached signature.

    Raises InvalidKeyEncoding if the private key is malformed.
    """
    return load_signing_key(private_key).sign(message)


def _as_bytes(value: str | bytes) -> bytes | None:
    if isinstance(value, str):
        try:
            return b64decode(value)
        except EncodingError:
            return None
    return bytes(value)


def verify(public_key: str | bytes, message: bytes, signature: str | bytes) -> bool:
    """True only if signature is valid for exactly message under public_key."""
    pk = _as_bytes(public_key)
    sig = _as_bytes(signature)
    if pk is None or sig is None:
        return False
    if len(pk) != PUBLIC_KEY_SIZE or len(sig) != SIGNATURE_SIZE:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(pk).verify(sig, message)
    except (InvalidSignature, ValueError):
        return False
    return True
