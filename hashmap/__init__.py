"""
hashmap — signed, content-addressed payloads for hashmap servers.

Architecture:
    Envelope:  {"data": b64(record), "pubkey": b64(ed25519 pk), "sig": b64(ed25519 sig)}
    Record:    {"message", "timestamp", "sigMethod", "version", "ttl"} as compact JSON
    Endpoint:  base58(multihash(blake2b-256(pubkey))), the server lookup key
"""

__version__ = "0.1.0"

# Wire format constants, shared with every other hashmap client
MAX_MESSAGE_BYTES = 512
DEFAULT_SIG_METHOD = "nacl-sign-ed25519"
DATA_TTL_DEFAULT = 86400  # 1 day in seconds
DATA_TTL_MAX = 604800  # 1 week in seconds
VERSION = "0.0.1"

# ed25519 sizes (private key = 32-byte seed + 32-byte public key)
PRIVATE_KEY_SIZE = 64
PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE = 64

# Endpoint derivation
ENDPOINT_DIGEST_SIZE = 32
BLAKE2B_256_MULTIHASH_CODE = 0xB220

# Client constants
DEFAULT_SERVER_ENV = "HASHMAP_SERVER_URI"
HTTP_TIMEOUT_ENV = "HASHMAP_HTTP_TIMEOUT"
HTTP_DEFAULT_TIMEOUT = 30
