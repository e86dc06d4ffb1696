from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest

from clouderrors import ErrorReporting


class StaticResolver:
    """Metadata resolver that answers synchronously."""

    def __init__(self, number: Any = None, error: Exception | None = None) -> None:
        self.number = number
        self.error = error
        self.calls = 0

    def __call__(self, callback: Any) -> None:
        self.calls += 1
        callback(self.error, self.number)


class DeferredResolver:
    """Metadata resolver that holds the callback until ``settle`` is called."""

    def __init__(self) -> None:
        self.callback: Any = None

    def __call__(self, callback: Any) -> None:
        self.callback = callback

    def settle(self, error: Exception | None = None, number: Any = None) -> None:
        self.callback(error, number)


class RecordingTransport:
    """Transport that records request specs and answers synchronously."""

    def __init__(self, error: Exception | None = None, response: Any = None, body: Any = None) -> None:
        self.requests: list[dict[str, Any]] = []
        self.error = error
        self.response = response
        self.body = {} if body is None else body

    def __call__(self, request_spec: dict[str, Any], callback: Any) -> None:
        self.requests.append(request_spec)
        callback(self.error, self.response, self.body)


class CallbackRecorder:
    """Collects ``(error, response, body)`` triples."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any, Any]] = []
        self.done = threading.Event()

    def __call__(self, err: Any, response: Any, body: Any) -> None:
        self.calls.append((err, response, body))
        self.done.set()

    @property
    def error(self) -> Any:
        return self.calls[0][0]


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def production_env() -> dict[str, str]:
    return {"PYTHON_ENV": "production"}


# ── Local API server ─────────────────────────────────────────────────


class ApiHandler(BaseHTTPRequestHandler):
    """HTTP handler that records every request and replies with a canned body."""

    server: ApiServer  # type: ignore[assignment]

    def _record(self) -> None:
        length = int(self.headers.get("Content-Length", 0))
        raw = self.rfile.read(length) if length else b""
        parts = urlsplit(self.path)
        self.server.requests.append(  # type: ignore[attr-defined]
            {
                "method": self.command,
                "path": parts.path,
                "query": {k: v[0] for k, v in parse_qs(parts.query).items()},
                "headers": {k.lower(): v for k, v in self.headers.items()},
                "body": json.loads(raw) if raw else None,
            }
        )

        status = self.server.response_status  # type: ignore[attr-defined]
        payload = self.server.response_body  # type: ignore[attr-defined]
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(payload.encode())

    do_GET = _record
    do_POST = _record
    do_DELETE = _record

    def log_message(self, *args: Any) -> None:
        pass  # Suppress request logging


class ApiServer(HTTPServer):
    requests: list[dict[str, Any]]
    response_status: int
    response_body: str


@pytest.fixture
def api_server():
    """Start a local HTTP server in a thread, yield (server, url)."""
    server = ApiServer(("127.0.0.1", 0), ApiHandler)
    server.requests = []
    server.response_status = 200
    server.response_body = "{}"
    port = server.server_address[1]
    url = f"http://127.0.0.1:{port}"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield server, url

    server.shutdown()
    server.server_close()
    thread.join(timeout=2)


@pytest.fixture
def make_client(transport, production_env):
    """Factory for clients wired to a recording transport and a settled config."""
    clients: list[ErrorReporting] = []

    def _make(options: Any = None, **kwargs: Any) -> ErrorReporting:
        if options is None:
            options = {
                "project_id": "test-project",
                "key": "test-key",
                "report_uncaught_exceptions": False,
            }
        kwargs.setdefault("transport", transport)
        kwargs.setdefault("metadata_resolver", StaticResolver(error=RuntimeError("no metadata server")))
        kwargs.setdefault("environ", production_env)
        c = ErrorReporting(options, **kwargs)
        clients.append(c)
        return c

    yield _make, transport

    for c in clients:
        c.shutdown()
