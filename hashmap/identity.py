"""
Identity — ed25519 key pairs and endpoint derivation.

Private key encoding (NaCl layout):
    seed (32 bytes) + public key (32 bytes) = 64 bytes, 88 base64 chars

Endpoint:
    base58( multihash(0xb220, blake2b-256(raw public key)) )

Keys are never persisted here; callers own them.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from hashmap import (
    BLAKE2B_256_MULTIHASH_CODE,
    ENDPOINT_DIGEST_SIZE,
    PRIVATE_KEY_SIZE,
    PUBLIC_KEY_SIZE,
)
from hashmap.codec import b58encode, b64decode, b64encode, encode_multihash
from hashmap.errors import EncodingError, InvalidKeyEncoding


@dataclass(frozen=True)
class KeyPair:
    """An ed25519 key pair, both halves base64-encoded."""

    private_key: str
    public_key: str


def _raw_public_key(private: Ed25519PrivateKey) -> bytes:
    return private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def generate_keypair() -> KeyPair:
    """Generate a fresh ed25519 key pair."""
    private = Ed25519PrivateKey.generate()
    seed = private.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = _raw_public_key(private)
    return KeyPair(private_key=b64encode(seed + public), public_key=b64encode(public))


def _decode_private_key(private_key: str) -> bytes:
    try:
        raw = b64decode(private_key)
    except EncodingError as e:
        raise InvalidKeyEncoding(f"Private key is not valid base64: {e}") from e
    if len(raw) != PRIVATE_KEY_SIZE:
        raise InvalidKeyEncoding(
            f"Private key must decode to {PRIVATE_KEY_SIZE} bytes, got {len(raw)}"
        )
    return raw


def public_key_from_private_key(private_key: str) -> str:
    """Extract the base64 public key (bytes 32..64) from a private key."""
    raw = _decode_private_key(private_key)
    return b64encode(raw[32:64])


def load_signing_key(private_key: str) -> Ed25519PrivateKey:
    """Load a private key for signing.

    The embedded public key must match the one derived from the seed;
    otherwise every signature made with it would fail to verify.
    """
    raw = _decode_private_key(private_key)
    private = Ed25519PrivateKey.from_private_bytes(raw[:32])
    if not hmac.compare_digest(_raw_public_key(private), raw[32:]):
        raise InvalidKeyEncoding("Private key seed does not match its embedded public key")
    return private


def public_key_bytes(public_key: str | bytes) -> bytes:
    """Raw 32-byte public key from base64 text or raw bytes."""
    if isinstance(public_key, str):
        try:
            raw = b64decode(public_key)
        except EncodingError as e:
            raise InvalidKeyEncoding(f"Public key is not valid base64: {e}") from e
    else:
        raw = bytes(public_key)
    if len(raw) != PUBLIC_KEY_SIZE:
        raise InvalidKeyEncoding(
            f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(raw)}"
        )
    return raw


def endpoint_from_public_key(public_key: str | bytes) -> str:
    """Content address of a public key. Same key, same endpoint."""
    digest = hashlib.blake2b(
        public_key_bytes(public_key), digest_size=ENDPOINT_DIGEST_SIZE
    ).digest()
    return b58encode(encode_multihash(BLAKE2B_256_MULTIHASH_CODE, digest))
