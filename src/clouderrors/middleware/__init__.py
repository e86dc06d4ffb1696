from .asgi import ErrorReportingASGI
from .django import ErrorReportingMiddleware
from .wsgi import ErrorReportingWSGI

__all__ = ["ErrorReportingASGI", "ErrorReportingMiddleware", "ErrorReportingWSGI"]
