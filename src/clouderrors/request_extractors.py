"""Pull HTTP context out of framework request objects."""

from __future__ import annotations

from typing import Any

from .types import RequestInformation


def _wsgi_headers(environ: dict) -> dict[str, str]:
    """Extract HTTP headers from WSGI environ (HTTP_* keys)."""
    headers: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            header_name = key[5:].lower().replace("_", "-")
            headers[header_name] = value
    return headers


def _wsgi_url(environ: dict) -> str:
    path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "/")
    qs = environ.get("QUERY_STRING", "")
    return f"{path}?{qs}" if qs else path


def from_wsgi(environ: dict, status_code: int = 0) -> RequestInformation:
    headers = _wsgi_headers(environ)
    forwarded = headers.get("x-forwarded-for", "")
    return RequestInformation(
        method=environ.get("REQUEST_METHOD", "GET"),
        url=_wsgi_url(environ),
        user_agent=headers.get("user-agent", ""),
        referrer=headers.get("referer", ""),
        status_code=status_code,
        remote_address=forwarded.split(",")[0].strip() or environ.get("REMOTE_ADDR", ""),
    )


def from_asgi(scope: dict, status_code: int = 0) -> RequestInformation:
    # ASGI headers are a list of [name, value] byte pairs
    headers: dict[str, str] = {}
    for name, value in scope.get("headers", []):
        headers[name.decode("latin-1").lower()] = value.decode("latin-1")

    url = scope.get("root_path", "") + scope.get("path", "/")
    qs = scope.get("query_string", b"")
    if qs:
        url = f"{url}?{qs.decode('latin-1')}"

    remote = ""
    client = scope.get("client")
    if client:
        remote = str(client[0])
    forwarded = headers.get("x-forwarded-for", "")

    return RequestInformation(
        method=scope.get("method", "GET"),
        url=url,
        user_agent=headers.get("user-agent", ""),
        referrer=headers.get("referer", ""),
        status_code=status_code,
        remote_address=forwarded.split(",")[0].strip() or remote,
    )


def from_django(request: Any, status_code: int = 0) -> RequestInformation:
    # Django request.META follows the WSGI environ layout
    meta = getattr(request, "META", {}) or {}
    info = from_wsgi(meta, status_code)
    method = getattr(request, "method", None)
    if isinstance(method, str):
        info.method = method
    get_full_path = getattr(request, "get_full_path", None)
    url = get_full_path() if callable(get_full_path) else getattr(request, "path", None)
    if isinstance(url, str):
        info.url = url
    return info
