"""Tests for WSGI middleware (Flask, Bottle)."""

from __future__ import annotations

from io import BytesIO
from typing import Any

import pytest

from clouderrors.middleware.wsgi import ErrorReportingWSGI

# ── Helpers ──────────────────────────────────────────────────────────


def simple_wsgi_app(environ: dict, start_response: Any) -> list[bytes]:
    """Minimal WSGI app that returns 200 with a body."""
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"Hello, World!"]


def error_wsgi_app(environ: dict, start_response: Any) -> list[bytes]:
    """WSGI app that raises an exception."""
    raise RuntimeError("app error")


def streaming_error_app(environ: dict, start_response: Any) -> Any:
    """WSGI app that fails halfway through the body."""
    start_response("200 OK", [("Content-Type", "text/plain")])

    def body():
        yield b"partial"
        raise ValueError("stream broke")

    return body()


def make_environ(
    method: str = "GET",
    path: str = "/api/test",
    query: str = "",
    headers: dict[str, str] | None = None,
) -> dict:
    env: dict[str, Any] = {
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "QUERY_STRING": query,
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8000",
        "REMOTE_ADDR": "127.0.0.1",
        "wsgi.input": BytesIO(b""),
    }
    if headers:
        for key, value in headers.items():
            env_key = "HTTP_" + key.upper().replace("-", "_")
            env[env_key] = value
    return env


def consume_response(app: Any, environ: dict) -> tuple[str, list[bytes]]:
    """Run WSGI app and consume all response data."""
    status_holder: list[str] = []

    def start_response(status: str, headers: list, exc_info: Any = None) -> Any:
        status_holder.append(status)
        return lambda s: None

    response = app(environ, start_response)
    try:
        body_parts = list(response)
    finally:
        if hasattr(response, "close"):
            response.close()
    return status_holder[0] if status_holder else "", body_parts


# ── Tests ────────────────────────────────────────────────────────────


class TestWsgiMiddleware:
    def test_success_reports_nothing(self, make_client):
        _make, transport = make_client
        app = ErrorReportingWSGI(simple_wsgi_app, client=_make())

        status, body = consume_response(app, make_environ())

        assert status == "200 OK"
        assert body == [b"Hello, World!"]
        assert transport.requests == []

    def test_exception_reported_and_reraised(self, make_client):
        _make, transport = make_client
        app = ErrorReportingWSGI(error_wsgi_app, client=_make())

        environ = make_environ(
            method="POST",
            path="/orders",
            query="id=7",
            headers={"User-Agent": "test/1.0", "Referer": "https://shop.example"},
        )
        with pytest.raises(RuntimeError, match="app error"):
            consume_response(app, environ)

        assert len(transport.requests) == 1
        payload = transport.requests[0]["json"]
        assert "RuntimeError: app error" in payload["message"]
        http = payload["context"]["httpRequest"]
        assert http["method"] == "POST"
        assert http["url"] == "/orders?id=7"
        assert http["userAgent"] == "test/1.0"
        assert http["referrer"] == "https://shop.example"
        assert http["responseStatusCode"] == 500
        assert http["remoteIp"] == "127.0.0.1"

    def test_forwarded_for_preferred(self, make_client):
        _make, transport = make_client
        app = ErrorReportingWSGI(error_wsgi_app, client=_make())

        with pytest.raises(RuntimeError):
            consume_response(app, make_environ(headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}))

        assert transport.requests[0]["json"]["context"]["httpRequest"]["remoteIp"] == "203.0.113.5"

    def test_error_during_iteration(self, make_client):
        _make, transport = make_client
        app = ErrorReportingWSGI(streaming_error_app, client=_make())

        with pytest.raises(ValueError, match="stream broke"):
            consume_response(app, make_environ())

        assert len(transport.requests) == 1
        payload = transport.requests[0]["json"]
        assert "ValueError: stream broke" in payload["message"]
        assert payload["context"]["httpRequest"]["responseStatusCode"] == 200

    def test_close_forwarded(self, make_client):
        _make, _ = make_client
        closed = []

        class Body(list):
            def close(self):
                closed.append(True)

        def app_with_close(environ, start_response):
            start_response("200 OK", [])
            return Body([b"x"])

        app = ErrorReportingWSGI(app_with_close, client=_make())
        consume_response(app, make_environ())
        assert closed == [True]

    def test_no_client_passthrough(self):
        app = ErrorReportingWSGI(simple_wsgi_app, client=None)
        status, body = consume_response(app, make_environ())
        assert status == "200 OK"
        assert body == [b"Hello, World!"]

    def test_no_client_still_raises(self):
        app = ErrorReportingWSGI(error_wsgi_app, client=None)
        with pytest.raises(RuntimeError):
            consume_response(app, make_environ())
