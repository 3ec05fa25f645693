"""
Client configuration and the process-wide default context.

Initialization order:
    1. At import the default context is empty (no server URI).
    2. configure_from_env() or set_server_uri() fill it in.
    3. Payload reads it once, at construction, and only when no explicit
       uri/config is passed.

The default context is a plain object with no locking. Callers mutating it
from several tasks must serialize those writes themselves.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from hashmap import DEFAULT_SERVER_ENV, HTTP_DEFAULT_TIMEOUT, HTTP_TIMEOUT_ENV
from hashmap.errors import ConfigError


@dataclass
class ClientConfig:
    """Settings a Payload is built with.

    Attributes:
        server_uri: Base URI of the hashmap server, or None.
        timeout: HTTP timeout in seconds for the default transport.
    """

    server_uri: str | None = None
    timeout: float = HTTP_DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Create a config from environment variables.

        Reads:
            HASHMAP_SERVER_URI   — e.g. https://prototype.hashmap.sh
            HASHMAP_HTTP_TIMEOUT — seconds (float)
        """
        uri = os.environ.get(DEFAULT_SERVER_ENV, "") or None
        raw_timeout = os.environ.get(HTTP_TIMEOUT_ENV, "")
        try:
            timeout = float(raw_timeout) if raw_timeout else HTTP_DEFAULT_TIMEOUT
        except ValueError as e:
            raise ConfigError(
                f"{HTTP_TIMEOUT_ENV} must be a number of seconds, got {raw_timeout!r}"
            ) from e
        return cls(server_uri=uri, timeout=timeout)


_default = ClientConfig()


def default_config() -> ClientConfig:
    """The process-wide default context."""
    return _default


def configure_from_env() -> ClientConfig:
    """Load the default context from the environment and return it."""
    env = ClientConfig.from_env()
    _default.server_uri = env.server_uri
    _default.timeout = env.timeout
    return _default


def set_server_uri(uri: str | None) -> None:
    """Set the default server URI. An empty string clears it."""
    _default.server_uri = uri or None


def get_server_uri() -> str | None:
    return _default.server_uri
