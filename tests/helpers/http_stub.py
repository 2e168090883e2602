"""Test helpers to stub ``urllib.request.urlopen`` for the remote client.

``StatsServiceStub`` maps ``(method, path)`` to a canned status and JSON body
and records every request URL, so tests can assert on query parameters
without a live service.
"""

from __future__ import annotations

import io
import json
import urllib.error
import urllib.parse
from collections.abc import Mapping
from email.message import Message
from typing import Any


class _Response:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> _Response:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


class StatsServiceStub:
    """Callable replacement for ``urlopen``.

    Parameters
    ----------
    routes:
        ``{(method, path): (status, payload)}``. ``payload`` is JSON-encoded
        unless it is already ``bytes``. A ``path`` may include a query string
        to match a specific request; otherwise only the path is compared.
    """

    def __init__(self, routes: Mapping[tuple[str, str], tuple[int, Any]]) -> None:
        self.routes = dict(routes)
        self.calls: list[tuple[str, str]] = []

    def __call__(self, req, timeout: float | None = None):
        url = req.full_url
        method = req.get_method()
        self.calls.append((method, url))
        parsed = urllib.parse.urlsplit(url)
        key_full = (method, f"{parsed.path}?{parsed.query}" if parsed.query else parsed.path)
        key = key_full if key_full in self.routes else (method, parsed.path)
        if key not in self.routes:
            raise AssertionError(f"unexpected request: {method} {url}")
        status, payload = self.routes[key]
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        if status >= 400:
            raise urllib.error.HTTPError(url, status, "error", Message(), io.BytesIO(body))
        return _Response(body)

    def params(self, index: int = -1) -> dict[str, str]:
        """Query parameters of a recorded call (last one by default)."""

        _method, url = self.calls[index]
        return dict(urllib.parse.parse_qsl(urllib.parse.urlsplit(url).query))
