"""Runtime configuration of the error reporting client.

The configuration is created synchronously but settles asynchronously: on
construction it asks the metadata service for the project number and, once
that callback fires, merges the answer with values found in the environment
and in the configuration given by the application. Settlement happens exactly
once and ends in one of two terminal outcomes, announced to listeners:

* ready: a project id or a project number is known
* error: neither could be found anywhere

Dependents subscribe with :meth:`Configuration.add_ready_listener` and
:meth:`Configuration.add_error_listener` instead of polling. A listener added
after settlement is called immediately with the settled outcome.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from dataclasses import asdict
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from ._metadata import MetadataCallback, MetadataResolver
from .errors import ErrorReportingError
from .types import Options, ServiceContext

logger = logging.getLogger("clouderrors")

PROJECT_ENV = "GCLOUD_PROJECT"
CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"
RUNTIME_ENV = "PYTHON_ENV"
SERVICE_ENVS = ("GAE_SERVICE", "GAE_MODULE_NAME", "K_SERVICE")
VERSION_ENVS = ("GAE_VERSION", "GAE_MODULE_VERSION", "K_REVISION")

ReadyListener = Callable[["Configuration"], Any]
ErrorListener = Callable[[Exception], Any]
Source = Tuple[str, Callable[[], Any]]


class InitState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    SETTLED = "settled"


def _first_present(field: str, sources: Sequence[Source]) -> Any:
    """Consult ``sources`` in order and return the first value that is not None."""
    for origin, source in sources:
        value = source()
        if value is not None:
            logger.debug("clouderrors: %s resolved from %s", field, origin)
            return value
    return None


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _identifier(value: Any, *, numeric: bool) -> str | None:
    # A project id is never all digits; a project number always is.
    value = _non_empty_str(value)
    if value is None or value.isdigit() != numeric:
        return None
    return value


def _project_number(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and value >= 0:
        return str(value)
    return _identifier(value, numeric=True)


def _normalize_given(given: Any) -> dict[str, Any] | None:
    if isinstance(given, Options):
        return asdict(given)
    if isinstance(given, Mapping):
        return dict(given)
    return None


class Configuration:
    """One-shot configuration resolver for a client instance.

    Args:
        given_config: mapping or :class:`Options` supplied by the application.
            Anything else is ignored.
        metadata_resolver: callable taking ``callback(error, number)``; it is
            invoked exactly once, from the constructor. Defaults to the GCE
            metadata server lookup.
        environ: environment mapping, defaults to ``os.environ``.
    """

    def __init__(
        self,
        given_config: Options | Mapping[str, Any] | None = None,
        *,
        metadata_resolver: Callable[[MetadataCallback], Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._env: Mapping[str, str] = os.environ if environ is None else environ
        self._given_configuration = _normalize_given(given_config)

        self._lock = threading.Lock()
        self._init_state = InitState.UNINITIALIZED
        self._init_error: Exception | None = None
        self._ready_listeners: list[ReadyListener] = []
        self._error_listeners: list[ErrorListener] = []
        # True while the settled outcome's queue is being drained
        self._draining = False

        self._project_id: str | None = None
        self._project_number: str | None = None
        self._key: str | None = None
        self._service_context = ServiceContext()
        self._report_uncaught_exceptions = True
        self._should_report_errors_to_api = (
            self._env.get(RUNTIME_ENV) == "production"
            or self._given("ignore_environment_check") is True
        )

        resolver = metadata_resolver if metadata_resolver is not None else MetadataResolver()
        try:
            resolver(self._assimilate_project_number)
        except Exception as exc:
            self._assimilate_project_number(exc, None)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def init_state(self) -> InitState:
        return self._init_state

    @property
    def init_error(self) -> Exception | None:
        return self._init_error

    @property
    def project_id(self) -> str | None:
        return self._project_id

    @property
    def project_number(self) -> str | None:
        return self._project_number

    @property
    def key(self) -> str | None:
        return self._key

    @property
    def service_context(self) -> ServiceContext:
        return self._service_context

    @property
    def report_uncaught_exceptions(self) -> bool:
        return self._report_uncaught_exceptions

    @property
    def should_report_errors_to_api(self) -> bool:
        return self._should_report_errors_to_api

    @property
    def given_configuration(self) -> dict[str, Any] | None:
        return self._given_configuration

    @property
    def log_level(self) -> Any:
        return self._given("log_level")

    @property
    def credentials(self) -> Any:
        return self._given("credentials")

    @property
    def key_filename(self) -> str | None:
        """Service account key file from the configuration or GOOGLE_APPLICATION_CREDENTIALS."""
        return _non_empty_str(self._given("key_filename")) or _non_empty_str(self._env.get(CREDENTIALS_ENV))

    @property
    def token_provider(self) -> Callable[[], Any] | None:
        """The ``credentials`` value when it is a callable returning an access token."""
        credentials = self.credentials
        return credentials if callable(credentials) else None

    def lacks_credentials(self) -> bool:
        """True when neither an API key nor a token provider is configured.

        Service account key files (``key_filename``, ``GOOGLE_APPLICATION_CREDENTIALS``)
        are not exchanged for tokens here; pass a ``credentials`` token provider
        or a transport that authorizes its own requests.
        """
        return not (_non_empty_str(self._given("key")) or self.token_provider is not None)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_ready_listener(self, callback: ReadyListener) -> None:
        """Call ``callback(config)`` once the configuration settles successfully.

        Fires immediately if that has already happened, after any queued
        listeners still being notified; does nothing if the configuration
        already failed to settle.
        """
        if not callable(callback):
            return
        with self._lock:
            failed = self._init_error is not None
            if self._init_state is InitState.UNINITIALIZED or (self._draining and not failed):
                self._ready_listeners.append(callback)
                return
        if not failed:
            self._notify("ready", [callback], self)

    def add_error_listener(self, callback: ErrorListener) -> None:
        """Call ``callback(error)`` once the configuration fails to settle.

        Fires immediately if that has already happened, after any queued
        listeners still being notified; does nothing if the configuration
        already settled successfully.
        """
        if not callable(callback):
            return
        with self._lock:
            error = self._init_error
            if self._init_state is InitState.UNINITIALIZED or (self._draining and error is not None):
                self._error_listeners.append(callback)
                return
        if error is not None:
            self._notify("error", [callback], error)

    def resolve_project_id(self, callback: Callable[[Optional[Exception], Optional[str]], Any]) -> None:
        """Call ``callback(None, identifier)`` or ``callback(error, None)`` once settled.

        The project id is preferred; the project number is used when no id is known.
        """
        self.add_ready_listener(lambda config: callback(None, config.project_id or config.project_number))
        self.add_error_listener(lambda error: callback(error, None))

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def _assimilate_project_number(self, error: Exception | None, number: Any) -> None:
        with self._lock:
            if self._init_state is InitState.SETTLED:
                logger.debug("clouderrors: configuration already settled, ignoring metadata result")
                return
            resolved = _project_number(number) if error is None else None
            if resolved is not None:
                self._project_number = resolved
            else:
                logger.warning(
                    "clouderrors: unable to retrieve project number from the metadata service "
                    "(number=%r, error=%s)",
                    number,
                    error,
                )
            self._gather_local_configuration()
            event, queue, payload = self._check_configuration_integrity()
        self._drain(event, queue, payload)

    def _check_configuration_integrity(self) -> tuple[str, list[Callable[[Any], Any]], Any]:
        # Caller holds the lock and has checked the state is still UNINITIALIZED.
        # The queue of the settled outcome stays live until drained so that
        # listeners added meanwhile, from any thread, run after the queued ones.
        self._init_state = InitState.SETTLED
        self._draining = True

        if self._project_id is None and self._project_number is None:
            self._init_error = ErrorReportingError("Unable to gather project id or number")
            logger.error("clouderrors: %s", self._init_error)
            self._ready_listeners = []
            return "error", self._error_listeners, self._init_error
        self._error_listeners = []
        return "ready", self._ready_listeners, self

    def _gather_local_configuration(self) -> None:
        self._project_id = _first_present(
            "project_id",
            [
                ("metadata", lambda: self._project_id),
                ("environment", lambda: _identifier(self._env.get(PROJECT_ENV), numeric=False)),
                ("configuration", lambda: _identifier(self._given("project_id"), numeric=False)),
            ],
        )
        self._project_number = _first_present(
            "project_number",
            [
                ("metadata", lambda: self._project_number),
                ("environment", lambda: _identifier(self._env.get(PROJECT_ENV), numeric=True)),
                ("configuration", lambda: _identifier(self._given("project_id"), numeric=True)),
            ],
        )

        given_context = self._given("service_context")
        if not isinstance(given_context, Mapping):
            given_context = {}
        self._service_context = ServiceContext(
            service=self._service_context_field("service", SERVICE_ENVS, given_context) or "",
            version=self._service_context_field("version", VERSION_ENVS, given_context) or "",
        )

        self._key = _first_present(
            "key",
            [
                ("runtime", lambda: self._key),
                ("configuration", lambda: _non_empty_str(self._given("key"))),
            ],
        )
        report_uncaught = self._given("report_uncaught_exceptions")
        if isinstance(report_uncaught, bool):
            self._report_uncaught_exceptions = report_uncaught

    def _service_context_field(
        self, name: str, env_names: Sequence[str], given_context: Mapping[str, Any]
    ) -> str | None:
        current = getattr(self._service_context, name)
        sources: list[Source] = [("runtime", lambda: _non_empty_str(current))]
        sources.extend(
            (f"environment {env_name}", lambda env_name=env_name: _non_empty_str(self._env.get(env_name)))
            for env_name in env_names
        )
        sources.append(("configuration", lambda: _non_empty_str(given_context.get(name))))
        return _first_present(f"service_context.{name}", sources)

    def _given(self, key: str) -> Any:
        if self._given_configuration is None:
            return None
        return self._given_configuration.get(key)

    def _drain(self, event: str, queue: list[Callable[[Any], Any]], payload: Any) -> None:
        while True:
            with self._lock:
                if not queue:
                    self._draining = False
                    return
                listener = queue.pop(0)
            self._notify(event, [listener], payload)

    def _notify(self, event: str, listeners: list[Callable[[Any], Any]], payload: Any) -> None:
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception("clouderrors: %s listener raised", event)
