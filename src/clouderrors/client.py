from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from ._metadata import MetadataCallback
from .configuration import Configuration
from .error_message import ErrorMessage
from .error_router import populate_error_message
from .errors import ClientNotConfiguredToSendErrors, ValidationError
from .list_options import ListErrorOptions, TimePeriod, populate_request_options, time_periods
from .logger import create_logger
from .request_handler import API, RequestHandler, Transport
from .types import Options, RequestCallback, RequestInformation
from .uncaught import UncaughtExceptionHandler

logger = logging.getLogger("clouderrors")


class ErrorReporting:
    """Error reporting client.

    Configuration resolves in the background (see :class:`Configuration`);
    every operation waits for it through the request handler, so the client
    is usable immediately after construction. No public method raises for
    configuration, validation or transport problems: they are delivered to
    the callback or returned.

    Usage::

        errors = ErrorReporting({"project_id": "my-project", "key": "..."})
        try:
            work()
        except Exception as exc:
            errors.report(exc)
    """

    time_periods = TimePeriod

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        options: Options | Mapping[str, Any] | None = None,
        *,
        transport: Transport | None = None,
        metadata_resolver: Callable[[MetadataCallback], Any] | None = None,
        environ: Mapping[str, str] | None = None,
        api_root: str = API,
    ) -> None:
        self._config = Configuration(options, metadata_resolver=metadata_resolver, environ=environ)
        self._logger = create_logger(self._config.log_level, environ)
        self._handler = RequestHandler(self._config, transport, api_root)
        self._uncaught: UncaughtExceptionHandler | None = None
        self._shutdown = False

        self._config.add_ready_listener(self._on_ready)
        self._config.add_error_listener(self._on_error)

    @property
    def config(self) -> Configuration:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def event(self) -> ErrorMessage:
        """New message pre-populated with the configured service context."""
        svc = self._config.service_context
        return ErrorMessage().set_service_context(svc.service, svc.version)

    def event_query(self) -> ListErrorOptions:
        return ListErrorOptions()

    def report(
        self,
        err: Any,
        request: RequestInformation | None = None,
        additional_message: str | None = None,
        callback: RequestCallback | None = None,
    ) -> ErrorMessage:
        """Report ``err`` (an exception, a mapping or any other value).

        ``additional_message`` replaces the message derived from ``err``.
        Returns the message that was sent.
        """
        em = self.event()
        em.consume_request_information(request)
        populate_error_message(err, em)
        if isinstance(additional_message, str):
            em.set_message(additional_message)
        self._handler.send_error(em, callback)
        return em

    def get_errors(
        self, options: Any, callback: RequestCallback | None = None
    ) -> ListErrorOptions | Exception:
        """List error events of a group.

        ``options`` is a group id, a :class:`ListErrorOptions` or a mapping.
        Returns the options used for the query, or the error that stopped it.
        """
        if self._config.lacks_credentials():
            err: Exception = ClientNotConfiguredToSendErrors()
            logger.error("clouderrors: %s", err)
            if callable(callback):
                callback(err, None, None)
            return err
        request_options = populate_request_options(options)
        if isinstance(request_options, ValidationError):
            if callable(callback):
                callback(request_options, None, None)
            return request_options
        stopped = self._handler.list_errors(request_options, callback)
        return request_options if stopped is None else stopped

    def get_group_stats(
        self,
        time_range: TimePeriod | str = TimePeriod.PERIOD_ONE_HOUR,
        callback: RequestCallback | None = None,
    ) -> Exception | None:
        """Summarize error groups over ``time_range``.

        Returns the error that stopped the request, if it was known up front.
        """
        period = time_range.value if isinstance(time_range, TimePeriod) else time_range
        if not isinstance(period, str) or period not in time_periods():
            err = ValidationError(
                "Argument time_range must be one of the following: " + ", ".join(time_periods())
            )
            if callable(callback):
                callback(err, None, None)
            return err
        return self._handler.list_group_stats(period, callback)

    def delete_all_errors(self, callback: RequestCallback | None = None) -> Exception | None:
        return self._handler.delete_all_errors(callback)

    def shutdown(self) -> None:
        """Restore the previous exception hooks. Safe to call twice."""
        if self._shutdown:
            return
        self._shutdown = True
        if self._uncaught is not None:
            self._uncaught.uninstall()
            self._uncaught = None

    # ------------------------------------------------------------------
    # Configuration events
    # ------------------------------------------------------------------

    def _on_ready(self, config: Configuration) -> None:
        logger.debug(
            "clouderrors: configuration ready (project_id=%s, project_number=%s)",
            config.project_id,
            config.project_number,
        )
        if self._shutdown or not config.report_uncaught_exceptions:
            return
        self._uncaught = UncaughtExceptionHandler(self)
        self._uncaught.install()

    def _on_error(self, err: Exception) -> None:
        logger.warning("clouderrors: running without a project, reports will not be sent: %s", err)
