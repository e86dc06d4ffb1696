"""WSGI middleware: works with Flask, Bottle, and any WSGI app."""

from __future__ import annotations

import contextlib
from typing import Any

from .. import request_extractors
from ..client import ErrorReporting

SERVER_ERROR = 500


class ErrorReportingWSGI:
    """WSGI middleware that reports exceptions escaping the application.

    The exception is re-raised after reporting so the server's own error
    handling still applies.

    Usage (Flask)::

        from clouderrors import ErrorReporting
        from clouderrors.middleware import ErrorReportingWSGI

        errors = ErrorReporting({"project_id": "...", "key": "..."})
        app.wsgi_app = ErrorReportingWSGI(app.wsgi_app, client=errors)
    """

    def __init__(self, app: Any, client: ErrorReporting | None = None) -> None:
        self.app = app
        self.client = client

    def __call__(self, environ: dict, start_response: Any) -> Any:
        if self.client is None:
            return self.app(environ, start_response)

        state = {"status_code": 0}

        def tracking_start_response(status: str, headers: list, exc_info: Any = None) -> Any:
            with contextlib.suppress(ValueError, IndexError, AttributeError):
                state["status_code"] = int(status.split(" ", 1)[0])
            return start_response(status, headers, exc_info)

        try:
            response = self.app(environ, tracking_start_response)
        except Exception as exc:
            self.report(exc, environ, SERVER_ERROR)
            raise
        return _ResponseWrapper(response, self, environ, state)

    def report(self, exc: BaseException, environ: dict, status_code: int) -> None:
        client = self.client
        if client is None:
            return
        client.report(exc, request=request_extractors.from_wsgi(environ, status_code or SERVER_ERROR))


class _ResponseWrapper:
    """Reports exceptions raised while the response body is iterated."""

    def __init__(self, response: Any, middleware: ErrorReportingWSGI, environ: dict, state: dict) -> None:
        self._response = response
        self._middleware = middleware
        self._environ = environ
        self._state = state

    def __iter__(self) -> Any:
        try:
            yield from self._response
        except Exception as exc:
            self._middleware.report(exc, self._environ, self._state["status_code"])
            raise

    def close(self) -> None:
        if hasattr(self._response, "close"):
            self._response.close()
