"""
Tests for hashmap.config.
"""

from __future__ import annotations

import pytest

from hashmap import HTTP_DEFAULT_TIMEOUT
from hashmap.config import (
    ClientConfig,
    configure_from_env,
    default_config,
    get_server_uri,
    set_server_uri,
)
from hashmap.errors import ConfigError, HashmapError


class TestClientConfig:

    def test_defaults(self):
        cfg = ClientConfig()
        assert cfg.server_uri is None
        assert cfg.timeout == HTTP_DEFAULT_TIMEOUT

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HASHMAP_SERVER_URI", "https://prototype.hashmap.sh")
        monkeypatch.setenv("HASHMAP_HTTP_TIMEOUT", "2.5")
        cfg = ClientConfig.from_env()
        assert cfg.server_uri == "https://prototype.hashmap.sh"
        assert cfg.timeout == 2.5

    def test_from_env_empty(self, monkeypatch):
        monkeypatch.delenv("HASHMAP_SERVER_URI", raising=False)
        monkeypatch.delenv("HASHMAP_HTTP_TIMEOUT", raising=False)
        cfg = ClientConfig.from_env()
        assert cfg.server_uri is None
        assert cfg.timeout == HTTP_DEFAULT_TIMEOUT

    def test_from_env_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("HASHMAP_HTTP_TIMEOUT", "soon")
        with pytest.raises(ConfigError, match="HASHMAP_HTTP_TIMEOUT") as exc:
            ClientConfig.from_env()
        assert isinstance(exc.value, HashmapError)

    def test_configure_from_env_bad_timeout_keeps_default(self, monkeypatch):
        monkeypatch.setenv("HASHMAP_HTTP_TIMEOUT", "abc")
        with pytest.raises(ConfigError):
            configure_from_env()
        assert default_config().timeout == HTTP_DEFAULT_TIMEOUT


class TestDefaultContext:

    def test_setter_and_getter(self):
        uri = "https://prototype.hashmap.sh"
        set_server_uri(uri)
        assert get_server_uri() == uri
        set_server_uri("")
        assert get_server_uri() is None

    def test_configure_from_env(self, monkeypatch):
        monkeypatch.setenv("HASHMAP_SERVER_URI", "http://localhost:3000")
        cfg = configure_from_env()
        assert cfg is default_config()
        assert get_server_uri() == "http://localhost:3000"

