"""Error taxonomy.

None of these are raised from a public entry point; they are delivered
through callbacks, listener events or return values.
"""

from __future__ import annotations

from typing import Any


class ErrorReportingError(Exception):
    """Base class for errors produced by this package."""


class ClientNotConfiguredToSendErrors(ErrorReportingError):
    def __init__(self) -> None:
        super().__init__(
            "Error reporting client has not been configured to send errors, "
            "please check the PYTHON_ENV environment variable and make sure it "
            'is set to "production", or set ignore_environment_check to True in '
            "the runtime configuration, and make sure credentials or an API key "
            "are available"
        )


class UnableToRetrieveProjectId(ErrorReportingError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            "Unable to retrieve a project id from the metadata service or the "
            "local environment. The client will not be able to communicate with "
            "the Error Reporting API without a valid project id. Supply one "
            "through the GCLOUD_PROJECT environment variable or the project_id "
            "configuration key if not running on Google Cloud Platform. "
            f"Returned error message: {reason}"
        )
        self.reason = reason


class BadAPIInteraction(ErrorReportingError):
    """Wraps a transport failure with the operation that was attempted."""

    def __init__(self, intended_action: str, reason: str) -> None:
        super().__init__(
            f"Encountered an error while attempting to {intended_action}. "
            f"Original error message: {reason}"
        )
        self.intended_action = intended_action
        self.reason = reason


class ValidationError(ErrorReportingError, ValueError):
    """Malformed caller-supplied options. Returned, never raised."""


class TransportError(ErrorReportingError):
    """Non-2xx response or network failure seen by the HTTP transport."""

    def __init__(self, message: str, status: int | None = None, response: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.response = response
