"""
HTTP transport — fetch and post JSON envelopes.

Uses stdlib urllib.request, run in the event loop's default executor so
the async Payload.get/post never block the loop. No retries; a failed
request surfaces as TransportError on the first attempt.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Protocol

from hashmap import HTTP_DEFAULT_TIMEOUT
from hashmap.errors import TransportError

log = logging.getLogger(__name__)


class Transport(Protocol):
    """What Payload needs from a transport."""

    async def fetch_json(self, url: str) -> Any: ...

    async def post_json(self, url: str, body: Any) -> Any: ...


class HTTPTransport:
    """JSON-over-HTTP transport using stdlib urllib.

    Usage:
        transport = HTTPTransport(timeout=10)
        envelope = await transport.fetch_json("https://host/<endpoint>")
    """

    def __init__(self, timeout: float = HTTP_DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def request(self, url: str, method: str = "GET", body: Any = None) -> Any:
        """Blocking request. Returns the decoded JSON body ({} if empty).

        Raises TransportError on connection failures, non-2xx statuses and
        undecodable response bodies.
        """
        data = None
        headers = {"Accept": "application/json"}
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        log.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = resp.status
                raw = resp.read()
        except urllib.error.HTTPError as e:
            raise TransportError(f"HTTP {e.code}: {e.reason} ({method} {url})", status=e.code) from e
        except urllib.error.URLError as e:
            raise TransportError(f"Connection failed: {e.reason} ({method} {url})") from e
        except OSError as e:
            raise TransportError(f"Request failed: {e} ({method} {url})") from e

        if not 200 <= status < 300:
            raise TransportError(f"HTTP {status} ({method} {url})", status=status)
        if not raw.strip():
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except (ValueError, RecursionError) as e:
            raise TransportError(f"Response is not valid JSON ({method} {url})", status=status) from e

    async def _run(self, url: str, method: str, body: Any = None) -> Any:
        loop = asyncio.get_running_loop()
        call = functools.partial(self.request, url, method, body)
        return await loop.run_in_executor(None, call)

    async def fetch_json(self, url: str) -> Any:
        return await self._run(url, "GET")

    async def post_json(self, url: str, body: Any) -> Any:
        return await self._run(url, "POST", body)
