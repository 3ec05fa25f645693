"""
Payload — signed envelopes and the client-side validation state machine.

States:
    empty → generated | imported | fetched

Every non-empty state holds an envelope that passed validate_envelope().
There is no way back to empty, and a failed generate/import/get leaves the
previous state as it was.

Validation chain (ordered, first failure wins):
    1. base64-decode data, sig, pubkey           → EncodingError
    2. decode record and its base64 message      → MalformedRecord
    3. decoded message <= MAX_MESSAGE_BYTES      → MessageTooLarge
    4. ed25519 verify(pubkey, data bytes, sig)   → SignatureInvalid

Network reads additionally require endpoint_from_public_key(pubkey) to equal
the endpoint that was fetched (EndpointMismatch).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hashmap import MAX_MESSAGE_BYTES
from hashmap.codec import (
    DataRecord,
    b64decode,
    b64encode,
    decode_record,
    encode_record,
    resolve_ttl,
)
from hashmap.config import ClientConfig, default_config
from hashmap.errors import (
    EndpointMismatch,
    HashmapError,
    MalformedEnvelope,
    MessageTooLarge,
    MissingEndpoint,
    MissingPayload,
    MissingURI,
    SignatureInvalid,
)
from hashmap.identity import endpoint_from_public_key, public_key_from_private_key
from hashmap.signer import sign, verify
from hashmap.transport import HTTPTransport, Transport

log = logging.getLogger(__name__)

ENVELOPE_FIELDS = ("data", "pubkey", "sig")


@dataclass(frozen=True)
class Envelope:
    """The wire unit: base64 record bytes, public key and signature."""

    data: str
    pubkey: str
    sig: str

    @classmethod
    def from_dict(cls, obj: Any) -> Envelope:
        """Build from a decoded JSON object. Raises MalformedEnvelope."""
        if not isinstance(obj, dict):
            raise MalformedEnvelope(
                f"Envelope must be a JSON object, got {type(obj).__name__}"
            )
        missing = [f for f in ENVELOPE_FIELDS if f not in obj]
        if missing:
            raise MalformedEnvelope(f"Envelope missing fields: {', '.join(missing)}")
        for name in ENVELOPE_FIELDS:
            if not isinstance(obj[name], str):
                raise MalformedEnvelope(f"Envelope field {name!r} must be a string")
        return cls(data=obj["data"], pubkey=obj["pubkey"], sig=obj["sig"])

    @classmethod
    def from_json(cls, raw_json: str | bytes) -> Envelope:
        try:
            obj = json.loads(raw_json)
        except (ValueError, RecursionError, TypeError) as e:
            raise MalformedEnvelope(f"Envelope is not valid JSON: {e}") from e
        return cls.from_dict(obj)

    def to_dict(self) -> dict[str, str]:
        return {"data": self.data, "pubkey": self.pubkey, "sig": self.sig}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def data_bytes(self) -> bytes:
        return b64decode(self.data)

    def pubkey_bytes(self) -> bytes:
        return b64decode(self.pubkey)

    def sig_bytes(self) -> bytes:
        return b64decode(self.sig)


def validate_envelope(envelope: Envelope) -> DataRecord:
    """Run the full validation chain. Returns the decoded record.

    Pure: nothing is stored. Raises the first failing stage's error.
    """
    data = envelope.data_bytes()
    sig = envelope.sig_bytes()
    pubkey = envelope.pubkey_bytes()

    record = decode_record(data)
    message = record.message_bytes()

    if len(message) > MAX_MESSAGE_BYTES:
        raise MessageTooLarge(
            f"Message is {len(message)} bytes, max is {MAX_MESSAGE_BYTES}"
        )

    if not verify(pubkey, data, sig):
        raise SignatureInvalid("Signature validation failed")

    return record


class PayloadState(Enum):
    EMPTY = "empty"
    GENERATED = "generated"
    IMPORTED = "imported"
    FETCHED = "fetched"


class Payload:
    """Client-side session object for one envelope.

    Usage:
        p = Payload(uri="https://prototype.hashmap.sh")
        p.generate(private_key, "hello")
        await p.post()

        q = Payload(uri="https://prototype.hashmap.sh", endpoint=endpoint)
        await q.get()
        q.get_message()  # "hello"
    """

    def __init__(
        self,
        uri: str | None = None,
        endpoint: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: Transport | None = None,
    ) -> None:
        cfg = config if config is not None else default_config()
        self.uri = uri or cfg.server_uri or None
        self.endpoint = endpoint or None
        self.transport = transport if transport is not None else HTTPTransport(cfg.timeout)
        self._state = PayloadState.EMPTY
        self._envelope: Envelope | None = None
        self._record: DataRecord | None = None

    def __repr__(self) -> str:
        return (
            f"Payload(state={self._state.value}, uri={self.uri!r}, "
            f"endpoint={self.endpoint!r})"
        )

    @property
    def state(self) -> PayloadState:
        return self._state

    @property
    def raw(self) -> Envelope | None:
        """The held envelope, or None while empty."""
        return self._envelope

    @property
    def envelope(self) -> Envelope:
        """The held envelope. Raises MissingPayload while empty."""
        if self._envelope is None:
            raise MissingPayload("No payload: call generate(), import_json() or get() first")
        return self._envelope

    def _accept(self, envelope: Envelope, record: DataRecord, state: PayloadState) -> None:
        self._envelope = envelope
        self._record = record
        self._state = state

    # -----------------------------------------------------------------------
    # Local paths
    # -----------------------------------------------------------------------

    def generate(
        self,
        private_key: str,
        message: str | bytes = " ",
        *,
        ttl: int | None = None,
    ) -> str:
        """Sign a message into a new envelope. Returns the envelope JSON.

        Args:
            private_key: Base64 64-byte ed25519 private key.
            message: Text (UTF-8 encoded) or raw bytes, at most 512 bytes.
            ttl: Validity in seconds; defaults to one day, max one week.

        Raises:
            TTLExceeded / InvalidTTL, MessageTooLarge, InvalidKeyEncoding.
            TypeError if message is neither str nor bytes.
            No envelope is produced or stored when any of these is raised.
        """
        if isinstance(message, str):
            message_bytes = message.encode("utf-8")
        elif isinstance(message, (bytes, bytearray, memoryview)):
            message_bytes = bytes(message)
        else:
            raise TypeError(f"message must be str or bytes, got {type(message).__name__}")
        ttl = resolve_ttl(ttl)
        if len(message_bytes) > MAX_MESSAGE_BYTES:
            raise MessageTooLarge(
                f"Message is {len(message_bytes)} bytes, max is {MAX_MESSAGE_BYTES}"
            )

        record = DataRecord.create(message_bytes, ttl=ttl)
        data = encode_record(record)
        sig = sign(private_key, data)

        envelope = Envelope(
            data=b64encode(data),
            pubkey=public_key_from_private_key(private_key),
            sig=b64encode(sig),
        )
        try:
            validated = validate_envelope(envelope)
        except HashmapError as e:
            raise RuntimeError(f"Generated envelope failed its own validation: {e}") from e

        self._accept(envelope, validated, PayloadState.GENERATED)
        log.debug("Generated envelope (%d message bytes, ttl=%ds)", len(message_bytes), ttl)
        return envelope.to_json()

    def import_json(self, raw_json: str | bytes) -> Envelope:
        """Parse and validate envelope JSON received from elsewhere."""
        envelope = Envelope.from_json(raw_json)
        self.validate(envelope)
        return envelope

    def validate(self, envelope: Envelope | dict) -> DataRecord:
        """Validate an envelope and, on success, hold it as imported."""
        if not isinstance(envelope, Envelope):
            envelope = Envelope.from_dict(envelope)
        try:
            record = validate_envelope(envelope)
        except HashmapError as e:
            log.debug("Envelope rejected: %s: %s", type(e).__name__, e)
            raise
        self._accept(envelope, record, PayloadState.IMPORTED)
        return record

    # -----------------------------------------------------------------------
    # Network paths
    # -----------------------------------------------------------------------

    async def get(self, endpoint: str | None = None, uri: str | None = None) -> Envelope:
        """Fetch, validate and hold the envelope stored at uri/endpoint.

        Raises:
            MissingEndpoint, MissingURI: before any request is made.
            TransportError: network failure or non-2xx status.
            MalformedEnvelope and any validation error.
            EndpointMismatch: the envelope's key does not hash to endpoint.
        """
        endpoint = endpoint or self.endpoint
        if not endpoint:
            raise MissingEndpoint("Missing endpoint: pass one to get() or Payload()")
        uri = uri or self.uri
        if not uri:
            raise MissingURI("Missing uri: pass one to get() or Payload(), or set a default")
        self.endpoint = endpoint
        self.uri = uri

        url = f"{uri.rstrip('/')}/{endpoint}"
        body = await self.transport.fetch_json(url)

        envelope = Envelope.from_dict(body)
        try:
            record = validate_envelope(envelope)
        except HashmapError as e:
            log.debug("Envelope from %s rejected: %s: %s", url, type(e).__name__, e)
            raise

        derived = endpoint_from_public_key(envelope.pubkey)
        if derived != endpoint:
            raise EndpointMismatch(
                f"Envelope public key hashes to {derived}, not requested endpoint {endpoint}"
            )

        self._accept(envelope, record, PayloadState.FETCHED)
        log.info("Fetched envelope from %s", url)
        return envelope

    async def post(self, uri: str | None = None) -> Any:
        """POST the held envelope to uri. Returns the server's JSON reply."""
        uri = uri or self.uri
        if not uri:
            raise MissingURI("Missing uri: pass one to post() or Payload(), or set a default")
        if self._envelope is None:
            raise MissingPayload("Missing payload: call generate() or import_json() first")
        self.uri = uri

        reply = await self.transport.post_json(uri, self._envelope.to_dict())
        log.info("Posted envelope to %s", uri)
        return reply

    # -----------------------------------------------------------------------
    # Accessors
    # -----------------------------------------------------------------------

    def get_data(self) -> DataRecord:
        if self._record is None:
            raise MissingPayload("No payload: call generate(), import_json() or get() first")
        return self._record

    def get_data_bytes(self) -> bytes:
        return self.envelope.data_bytes()

    def get_pubkey_bytes(self) -> bytes:
        return self.envelope.pubkey_bytes()

    def get_sig_bytes(self) -> bytes:
        return self.envelope.sig_bytes()

    def get_message_bytes(self) -> bytes:
        return self.get_data().message_bytes()

    def get_message(self) -> str:
        """The message as UTF-8 text."""
        return self.get_message_bytes().decode("utf-8")

    def derive_endpoint(self) -> str:
        """Endpoint the held envelope should be stored under."""
        return endpoint_from_public_key(self.envelope.pubkey)
