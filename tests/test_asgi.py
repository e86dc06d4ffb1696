"""Tests for ASGI middleware (FastAPI, Starlette, Litestar)."""

from __future__ import annotations

from typing import Any

import pytest

from clouderrors.middleware.asgi import ErrorReportingASGI

# ── Helpers ──────────────────────────────────────────────────────────


async def simple_asgi_app(scope: dict, receive: Any, send: Any) -> None:
    """Minimal ASGI app that returns 200 with a body."""
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [[b"content-type", b"text/plain"]],
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"Hello, World!",
        }
    )


async def error_asgi_app(scope: dict, receive: Any, send: Any) -> None:
    """ASGI app that raises an exception."""
    raise RuntimeError("app error")


async def late_error_asgi_app(scope: dict, receive: Any, send: Any) -> None:
    """ASGI app that fails after sending the response start."""
    await send({"type": "http.response.start", "status": 202, "headers": []})
    raise ValueError("late failure")


def make_scope(
    method: str = "GET",
    path: str = "/api/test",
    headers: list[tuple[bytes, bytes]] | None = None,
    query_string: bytes = b"",
    scope_type: str = "http",
) -> dict:
    return {
        "type": scope_type,
        "method": method,
        "path": path,
        "root_path": "",
        "query_string": query_string,
        "headers": headers or [],
        "client": ("192.0.2.10", 51234),
    }


async def collect_response(app: Any, scope: dict) -> list[dict]:
    """Run ASGI app and collect sent messages."""
    sent: list[dict] = []

    async def receive() -> dict:
        return {"type": "http.request", "body": b""}

    async def send(message: dict) -> None:
        sent.append(message)

    await app(scope, receive, send)
    return sent


# ── Tests ────────────────────────────────────────────────────────────


class TestAsgiMiddleware:
    @pytest.mark.asyncio
    async def test_success_reports_nothing(self, make_client):
        _make, transport = make_client
        app = ErrorReportingASGI(simple_asgi_app, client=_make())

        sent = await collect_response(app, make_scope())

        assert sent[0]["status"] == 200
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_exception_reported_and_reraised(self, make_client):
        _make, transport = make_client
        app = ErrorReportingASGI(error_asgi_app, client=_make())

        scope = make_scope(
            method="DELETE",
            path="/users/1",
            query_string=b"force=1",
            headers=[(b"user-agent", b"httpx/0.27"), (b"referer", b"https://admin.example")],
        )
        with pytest.raises(RuntimeError, match="app error"):
            await collect_response(app, scope)

        assert len(transport.requests) == 1
        payload = transport.requests[0]["json"]
        assert "RuntimeError: app error" in payload["message"]
        http = payload["context"]["httpRequest"]
        assert http["method"] == "DELETE"
        assert http["url"] == "/users/1?force=1"
        assert http["userAgent"] == "httpx/0.27"
        assert http["referrer"] == "https://admin.example"
        assert http["responseStatusCode"] == 500
        assert http["remoteIp"] == "192.0.2.10"

    @pytest.mark.asyncio
    async def test_status_from_started_response(self, make_client):
        _make, transport = make_client
        app = ErrorReportingASGI(late_error_asgi_app, client=_make())

        with pytest.raises(ValueError):
            await collect_response(app, make_scope())

        assert transport.requests[0]["json"]["context"]["httpRequest"]["responseStatusCode"] == 202

    @pytest.mark.asyncio
    async def test_non_http_scope_passthrough(self, make_client):
        _make, transport = make_client
        app = ErrorReportingASGI(error_asgi_app, client=_make())

        with pytest.raises(RuntimeError):
            await collect_response(app, make_scope(scope_type="websocket"))

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_no_client_passthrough(self):
        app = ErrorReportingASGI(simple_asgi_app, client=None)
        sent = await collect_response(app, make_scope())
        assert sent[0]["status"] == 200
