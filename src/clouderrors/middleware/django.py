"""Django middleware: reads config from settings.CLOUDERRORS or accepts a client."""

from __future__ import annotations

import logging
from typing import Any

from .. import request_extractors
from ..client import ErrorReporting

logger = logging.getLogger("clouderrors")


class ErrorReportingMiddleware:
    """Django middleware that reports exceptions raised by views.

    Django calls ``process_exception`` before rendering its own error
    response; the exception is reported and Django's handling continues.

    Usage (settings.py)::

        CLOUDERRORS = {
            "project_id": "my-project",
            "key": "your-api-key",
            "service_context": {"service": "web", "version": "1.0"},
        }

        MIDDLEWARE = [
            "clouderrors.middleware.django.ErrorReportingMiddleware",
            # ...
        ]
    """

    _client: ErrorReporting | None = None

    def __init__(self, get_response: Any) -> None:
        self.get_response = get_response

        # Initialize client on first instantiation
        if ErrorReportingMiddleware._client is None:
            try:
                from django.conf import settings  # type: ignore[import-untyped]

                config = getattr(settings, "CLOUDERRORS", None)
                if config and isinstance(config, dict):
                    ErrorReportingMiddleware._client = ErrorReporting(config)
            except ImportError:
                pass  # Django not available, passthrough
            except Exception:
                logger.exception("clouderrors: could not configure Django middleware")

    def __call__(self, request: Any) -> Any:
        return self.get_response(request)

    def process_exception(self, request: Any, exception: Exception) -> None:
        if self._client is None:
            return None
        status_code = getattr(exception, "status_code", None)
        if not isinstance(status_code, int):
            status_code = 500
        self._client.report(exception, request=request_extractors.from_django(request, status_code))
        return None
