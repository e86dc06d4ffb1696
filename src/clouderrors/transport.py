"""Default authorized-request capability built on urllib.

Any callable with the signature ``transport(request_spec, callback)`` can
replace it; ``request_spec`` is a dict with ``uri``, ``method`` and an
optional ``json`` body, and ``callback(error, response, body)`` is called once.
"""

from __future__ import annotations

import json
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import TransportError
from .types import RequestCallback

SEND_TIMEOUT_S = 10
MAX_ERROR_SNIPPET = 1024


@dataclass
class Response:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None


class HttpTransport:
    """Issues each request on its own daemon thread. No retries."""

    def __init__(
        self,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = SEND_TIMEOUT_S,
    ) -> None:
        self._token_provider = token_provider
        self._timeout = timeout

    def __call__(self, request_spec: dict[str, Any], callback: RequestCallback) -> None:
        thread = threading.Thread(
            target=self._run,
            args=(request_spec, callback),
            daemon=True,
            name="clouderrors-request",
        )
        thread.start()

    def _run(self, request_spec: dict[str, Any], callback: RequestCallback) -> None:
        try:
            response = self.perform(request_spec)
        except Exception as exc:
            callback(exc, getattr(exc, "response", None), None)
            return
        callback(None, response, response.body)

    def perform(self, request_spec: dict[str, Any]) -> Response:
        """Run the request synchronously and return the decoded response."""
        headers = {"Accept": "application/json"}
        data = None
        if request_spec.get("json") is not None:
            data = json.dumps(request_spec["json"], separators=(",", ":")).encode()
            headers["Content-Type"] = "application/json"
        if self._token_provider is not None:
            token = self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        req = urllib.request.Request(
            request_spec["uri"],
            data=data,
            headers=headers,
            method=request_spec.get("method", "GET"),
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                raw = resp.read()
                return Response(
                    status=resp.status,
                    headers=dict(resp.headers.items()),
                    body=_decode_body(raw),
                )
        except urllib.error.HTTPError as exc:
            snippet = ""
            try:
                snippet = exc.read(MAX_ERROR_SNIPPET).decode(errors="replace")
            except Exception:
                pass
            response = Response(
                status=exc.code,
                headers=dict(exc.headers.items()) if exc.headers else {},
                body=snippet,
            )
            raise TransportError(f"HTTP {exc.code}: {snippet}", status=exc.code, response=response) from exc
        except urllib.error.URLError as exc:
            raise TransportError(f"Network error: {exc.reason}") from exc


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return {}
    text = raw.decode(errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
