"""
Shared fixtures: key pairs, a reset default config, and a real hashmap-like
HTTP server on localhost.
"""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

import pytest

from hashmap.config import default_config
from hashmap.identity import endpoint_from_public_key, generate_keypair


class FakeHashmapHandler(BaseHTTPRequestHandler):
    """GET /<endpoint> returns the stored envelope; POST / stores one."""

    def log_message(self, format: str, *args: Any) -> None:
        pass

    def _send(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        server = self.server  # type: ignore[attr-defined]
        server.requests.append(("GET", self.path, None))
        if self.path in server.overrides:
            status, body = server.overrides[self.path]
            self._send(status, body)
            return
        envelope = server.envelopes.get(self.path.lstrip("/"))
        if envelope is None:
            self._send(404, json.dumps({"error": "Not found"}).encode())
            return
        self._send(200, json.dumps(envelope).encode())

    def do_POST(self) -> None:
        server = self.server  # type: ignore[attr-defined]
        length = int(self.headers.get("Content-Length", 0))
        raw = self.rfile.read(length)
        body = json.loads(raw.decode())
        server.requests.append(("POST", self.path, body))
        endpoint = endpoint_from_public_key(body["pubkey"])
        server.envelopes[endpoint] = body
        self._send(200, json.dumps({"endpoint": endpoint}).encode())


class FakeHashmapServer(HTTPServer):
    def __init__(self, address: tuple[str, int]) -> None:
        super().__init__(address, FakeHashmapHandler)
        self.envelopes: dict[str, dict] = {}
        self.overrides: dict[str, tuple[int, bytes]] = {}
        self.requests: list[tuple[str, str, Any]] = []

    @property
    def uri(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"


@pytest.fixture
def hashmap_server():
    """Start a fake hashmap server on a random port."""
    server = FakeHashmapServer(("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def keypair():
    return generate_keypair()


@pytest.fixture
def other_keypair():
    return generate_keypair()


@pytest.fixture
def endpoint(keypair):
    return endpoint_from_public_key(keypair.public_key)


@pytest.fixture(autouse=True)
def reset_default_config():
    """Keep the process-wide default context clean between tests."""
    cfg = default_config()
    saved = (cfg.server_uri, cfg.timeout)
    yield cfg
    cfg.server_uri, cfg.timeout = saved
