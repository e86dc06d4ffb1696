"""ASGI middleware: works with FastAPI, Starlette, Litestar, and any ASGI app."""

from __future__ import annotations

from typing import Any

from .. import request_extractors
from ..client import ErrorReporting


class ErrorReportingASGI:
    """ASGI middleware that reports exceptions escaping the application.

    Usage (FastAPI / Starlette)::

        from clouderrors import ErrorReporting
        from clouderrors.middleware import ErrorReportingASGI

        errors = ErrorReporting({"project_id": "...", "key": "..."})
        app.add_middleware(ErrorReportingASGI, client=errors)
    """

    def __init__(self, app: Any, client: ErrorReporting | None = None, **kwargs: Any) -> None:
        self.app = app
        self.client = client

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http" or self.client is None:
            await self.app(scope, receive, send)
            return

        status_code = 0

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            # Response not started yet means the server will answer 500
            info = request_extractors.from_asgi(scope, status_code or 500)
            self.client.report(exc, request=info)
            raise
