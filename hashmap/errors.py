"""
Error taxonomy for payload construction, validation and transport.

Every failure raised by this package derives from HashmapError so callers
can tell a terminal validation failure (SignatureInvalid, EndpointMismatch)
apart from a retry-worthy TransportError.
"""

from __future__ import annotations


class HashmapError(Exception):
    """Base class for all hashmap errors."""


class EncodingError(HashmapError, ValueError):
    """Invalid base64, base58 or multihash input."""


class MalformedRecord(HashmapError):
    """Inner data record is not a valid serialized record."""


class MalformedEnvelope(HashmapError):
    """Envelope JSON is unparsable or missing required fields."""


class InvalidTTL(HashmapError, ValueError):
    """Requested ttl is outside (0, DATA_TTL_MAX]."""


class TTLExceeded(InvalidTTL):
    """Requested ttl exceeds DATA_TTL_MAX."""


class MessageTooLarge(HashmapError):
    """Decoded message is longer than MAX_MESSAGE_BYTES."""


class InvalidKeyEncoding(HashmapError):
    """Key does not decode to a well-formed ed25519 key."""


class SignatureInvalid(HashmapError):
    """Signature does not verify over the envelope data."""


class EndpointMismatch(HashmapError):
    """Envelope public key does not hash to the endpoint it was fetched from."""


class ConfigError(HashmapError, ValueError):
    """An environment setting could not be parsed."""


class PreconditionError(HashmapError):
    """A network operation was attempted without its required state."""


class MissingURI(PreconditionError):
    """No server URI was given or configured."""


class MissingEndpoint(PreconditionError):
    """No endpoint was given or configured."""


class MissingPayload(PreconditionError):
    """No envelope has been generated, imported or fetched yet."""


class TransportError(HashmapError):
    """HTTP request failed, returned a non-2xx status, or a non-JSON body.

    Attributes:
        status: HTTP status code, or None for connection-level failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
