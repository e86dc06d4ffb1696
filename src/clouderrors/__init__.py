"""Cloud Error Reporting: Python SDK."""

from ._metadata import MetadataResolver
from .client import ErrorReporting
from .configuration import Configuration, InitState
from .error_message import ErrorMessage
from .errors import (
    BadAPIInteraction,
    ClientNotConfiguredToSendErrors,
    ErrorReportingError,
    TransportError,
    UnableToRetrieveProjectId,
    ValidationError,
)
from .list_options import ListErrorOptions, TimePeriod, populate_request_options
from .request_handler import RequestHandler
from .transport import HttpTransport
from .types import Options, RequestInformation, ServiceContext
from .middleware import ErrorReportingASGI, ErrorReportingMiddleware, ErrorReportingWSGI

__version__ = "0.1.0"

__all__ = [
    "ErrorReporting",
    "Configuration",
    "InitState",
    "ErrorMessage",
    "ListErrorOptions",
    "TimePeriod",
    "populate_request_options",
    "RequestHandler",
    "HttpTransport",
    "MetadataResolver",
    "Options",
    "RequestInformation",
    "ServiceContext",
    "ErrorReportingError",
    "ClientNotConfiguredToSendErrors",
    "UnableToRetrieveProjectId",
    "BadAPIInteraction",
    "ValidationError",
    "TransportError",
    "ErrorReportingASGI",
    "ErrorReportingWSGI",
    "ErrorReportingMiddleware",
]
