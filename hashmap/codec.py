"""
Codec — canonical record serialization and the text encodings used on the wire.

Record bytes (what gets signed):
    {"message":"<b64>","timestamp":<ns>,"sigMethod":"nacl-sign-ed25519","version":"0.0.1","ttl":<s>}

Compact JSON, fixed key order, UTF-8. decode_record(b) followed by
encode_record reproduces b exactly for any record this module produced.

Multihash framing:
    varint(code) + varint(len(digest)) + digest
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass

import base58

from hashmap import (
    DATA_TTL_DEFAULT,
    DATA_TTL_MAX,
    DEFAULT_SIG_METHOD,
    VERSION,
)
from hashmap.errors import EncodingError, InvalidTTL, MalformedRecord, TTLExceeded

# Wire key order of the serialized record
RECORD_FIELDS = ("message", "timestamp", "sigMethod", "version", "ttl")

# Record timestamps are unsigned 64-bit nanoseconds
TIMESTAMP_MAX = 2**64 - 1


# ---------------------------------------------------------------------------
# Base64 / base58
# ---------------------------------------------------------------------------

def b64encode(data: bytes) -> str:
    """Standard base64 with padding."""
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """Strict standard base64 decode. Raises EncodingError on any defect."""
    if not isinstance(text, str):
        raise EncodingError(f"base64 input must be str, got {type(text).__name__}")
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise EncodingError(f"Invalid base64: {e}") from e


def b58encode(data: bytes) -> str:
    """Base58 (bitcoin alphabet)."""
    return base58.b58encode(data).decode("ascii")


def b58decode(text: str) -> bytes:
    """Base58 decode. Raises EncodingError on empty or invalid input."""
    if not isinstance(text, str) or not text:
        raise EncodingError(f"Invalid base58: {text!r}")
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise EncodingError(f"Invalid base58: {e}") from e


# ---------------------------------------------------------------------------
# Multihash
# ---------------------------------------------------------------------------

def _encode_varint(n: int) -> bytes:
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _decode_varint(buf: bytes, offset: int) -> tuple[int, int]:
    """Returns (value, next_offset)."""
    value = 0
    shift = 0
    for i in range(offset, min(len(buf), offset + 9)):
        byte = buf[i]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, i + 1
        shift += 7
    raise EncodingError("Truncated or oversized varint in multihash")


def encode_multihash(code: int, digest: bytes) -> bytes:
    """Prefix a digest with its hash-function code and length."""
    return _encode_varint(code) + _encode_varint(len(digest)) + digest


def decode_multihash(data: bytes) -> tuple[int, bytes]:
    """Split a multihash into (code, digest).

    Raises EncodingError if the declared length does not match the digest.
    """
    code, offset = _decode_varint(data, 0)
    length, offset = _decode_varint(data, offset)
    digest = data[offset:]
    if len(digest) != length:
        raise EncodingError(
            f"Multihash length mismatch: declared {length}, got {len(digest)}"
        )
    return code, digest


# ---------------------------------------------------------------------------
# Data record
# ---------------------------------------------------------------------------

def unix_nano_now() -> int:
    """Wall-clock nanoseconds since the Unix epoch (not monotonic)."""
    return time.time_ns()


def resolve_ttl(ttl: int | None) -> int:
    """Apply the default and enforce 0 < ttl <= DATA_TTL_MAX."""
    if ttl is None:
        return DATA_TTL_DEFAULT
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        raise InvalidTTL(f"ttl must be an integer number of seconds, got {ttl!r}")
    if ttl > DATA_TTL_MAX:
        raise TTLExceeded(f"ttl {ttl} exceeds max of {DATA_TTL_MAX} seconds")
    if ttl <= 0:
        raise InvalidTTL(f"ttl must be positive, got {ttl}")
    return ttl


@dataclass(frozen=True)
class DataRecord:
    """The signed body of an envelope.

    Attributes:
        message: Base64 of the raw message bytes.
        timestamp: Creation time in nanoseconds since the epoch.
        sig_method: Signature scheme tag.
        version: Record format version.
        ttl: Requested validity in seconds.
    """

    message: str
    timestamp: int
    sig_method: str = DEFAULT_SIG_METHOD
    version: str = VERSION
    ttl: int = DATA_TTL_DEFAULT

    @classmethod
    def create(
        cls,
        message: str | bytes,
        ttl: int | None = None,
        timestamp: int | None = None,
    ) -> DataRecord:
        """Build a record for a new envelope. str messages are UTF-8 encoded."""
        if isinstance(message, str):
            message = message.encode("utf-8")
        return cls(
            message=b64encode(message),
            timestamp=unix_nano_now() if timestamp is None else timestamp,
            ttl=resolve_ttl(ttl),
        )

    def message_bytes(self) -> bytes:
        try:
            return b64decode(self.message)
        except EncodingError as e:
            raise MalformedRecord(f"Record message is not valid base64: {e}") from e

    @property
    def expires_at_ns(self) -> int:
        return self.timestamp + self.ttl * 1_000_000_000

    def is_expired(self, now_ns: int | None = None) -> bool:
        if now_ns is None:
            now_ns = unix_nano_now()
        return now_ns >= self.expires_at_ns

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "timestamp": self.timestamp,
            "sigMethod": self.sig_method,
            "version": self.version,
            "ttl": self.ttl,
        }


def encode_record(record: DataRecord) -> bytes:
    """Canonical bytes of a record. These are the bytes that get signed."""
    return json.dumps(record.to_dict(), separators=(",", ":")).encode("utf-8")


def decode_record(data: bytes) -> DataRecord:
    """Parse canonical record bytes. Raises MalformedRecord on any defect."""
    # ValueError also covers oversized integer literals; deep nesting recurses
    try:
        obj = json.loads(data.decode("utf-8"))
    except (ValueError, RecursionError) as e:
        raise MalformedRecord(f"Record is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise MalformedRecord("Record must be a JSON object")

    missing = [f for f in RECORD_FIELDS if f not in obj]
    if missing:
        raise MalformedRecord(f"Record missing fields: {', '.join(missing)}")

    for name in ("message", "sigMethod", "version"):
        if not isinstance(obj[name], str):
            raise MalformedRecord(f"Record field {name!r} must be a string")
    for name in ("timestamp", "ttl"):
        value = obj[name]
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedRecord(f"Record field {name!r} must be an integer")
    if not 0 <= obj["timestamp"] <= TIMESTAMP_MAX:
        raise MalformedRecord(f"Record timestamp out of 64-bit range: {obj['timestamp']}")

    if obj["sigMethod"] != DEFAULT_SIG_METHOD:
        raise MalformedRecord(f"Unsupported sigMethod: {obj['sigMethod']!r}")

    return DataRecord(
        message=obj["message"],
        timestamp=obj["timestamp"],
        sig_method=obj["sigMethod"],
        version=obj["version"],
        ttl=obj["ttl"],
    )
