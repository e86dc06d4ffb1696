"""Routes report/list/delete operations to the Error Reporting API.

Each call walks the same steps: check the client may send at all, wait for
the configuration to yield a project identifier, build the URL, hand the
request to the transport and route the result to the caller's callback. No
queueing or batching happens here; every call issues its own request.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping
from urllib.parse import urlencode

from .configuration import Configuration
from .error_message import ErrorMessage
from .errors import BadAPIInteraction, ClientNotConfiguredToSendErrors, UnableToRetrieveProjectId
from .list_options import ListErrorOptions, TimePeriod
from .transport import HttpTransport
from .types import RequestCallback

logger = logging.getLogger("clouderrors")

API = "https://clouderrorreporting.googleapis.com/v1beta1/projects"

API_ENDPOINTS = {
    "report": "events:report",
    "delete_all_events": "events",
    "list_events": "events",
    "group_stats": "groupStats",
}

Transport = Callable[[dict[str, Any], RequestCallback], Any]
_Ready = Callable[[RequestCallback, "Exception | None", "str | None"], None]


def _noop(*_args: Any) -> None:
    pass


def _once(callback: RequestCallback) -> RequestCallback:
    lock = threading.Lock()
    called = False

    def wrapper(err: Exception | None, response: Any, body: Any) -> None:
        nonlocal called
        with lock:
            if called:
                return
            called = True
        callback(err, response, body)

    return wrapper


def manufacture_api_href(
    project: str, endpoint: str, query: Mapping[str, Any] | None = None, api_root: str = API
) -> str:
    href = "/".join([api_root.rstrip("/"), project, endpoint])
    if query:
        href += "?" + urlencode(query)
    return href


class RequestHandler:
    """Dispatcher between payload builders and the authorized transport.

    ``callback(error, response, body)`` is invoked at most once per call. When
    no callback is supplied the result is dropped. Each operation returns the
    error when the client is not configured to send, ``None`` otherwise.

    The default transport authorizes with the API key in the query string and
    with the ``credentials`` token provider, when one is configured.
    """

    def __init__(
        self,
        config: Configuration,
        transport: Transport | None = None,
        api_root: str = API,
    ) -> None:
        self._config = config
        self._transport: Transport = (
            transport if transport is not None else HttpTransport(token_provider=config.token_provider)
        )
        self._api_root = api_root

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def send_error(
        self, error_message: ErrorMessage | Mapping[str, Any], callback: RequestCallback | None = None
    ) -> Exception | None:
        body = error_message.to_dict() if isinstance(error_message, ErrorMessage) else dict(error_message)
        return self._dispatch(
            lambda project: "write an error to the API",
            API_ENDPOINTS["report"],
            "POST",
            callback,
            body=body,
        )

    def delete_all_errors(self, callback: RequestCallback | None = None) -> Exception | None:
        return self._dispatch(
            lambda project: f"delete all errors from project {project}",
            API_ENDPOINTS["delete_all_events"],
            "DELETE",
            callback,
        )

    def list_errors(
        self, list_options: ListErrorOptions, callback: RequestCallback | None = None
    ) -> Exception | None:
        return self._dispatch(
            lambda project: f"list errors from project {project}",
            API_ENDPOINTS["list_events"],
            "GET",
            callback,
            query=list_options.export_as_request_options(),
        )

    def list_group_stats(
        self, time_range: TimePeriod | str = TimePeriod.PERIOD_ONE_HOUR, callback: RequestCallback | None = None
    ) -> Exception | None:
        query = ListErrorOptions().set_time_range(time_range).export_as_request_options()
        return self._dispatch(
            lambda project: f"list error groups from project {project}",
            API_ENDPOINTS["group_stats"],
            "GET",
            callback,
            query=query,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def api_key_options(self) -> dict[str, str]:
        key = self._config.key
        return {"key": key} if key else {}

    def _request_preflight(self, callback: RequestCallback | None, ready: _Ready) -> Exception | None:
        cb = _once(callback if callable(callback) else _noop)

        if not self._config.should_report_errors_to_api or self._config.lacks_credentials():
            err = ClientNotConfiguredToSendErrors()
            logger.error("clouderrors: %s", err)
            if self._config.key_filename and self._config.lacks_credentials():
                logger.warning(
                    "clouderrors: key file %s is not exchanged for access tokens, "
                    "configure a key or a credentials token provider",
                    self._config.key_filename,
                )
            ready(cb, err, None)
            return err

        def on_project(err: Exception | None, project: str | None) -> None:
            if err is not None or not project:
                wrapped = UnableToRetrieveProjectId(str(err))
                logger.error("clouderrors: %s", wrapped)
                ready(cb, wrapped, None)
                return
            ready(cb, None, project)

        self._config.resolve_project_id(on_project)
        return None

    def _dispatch(
        self,
        describe: Callable[[str], str],
        endpoint: str,
        method: str,
        callback: RequestCallback | None,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Exception | None:
        def ready(cb: RequestCallback, err: Exception | None, project: str | None) -> None:
            if err is not None or project is None:
                cb(err, None, None)
                return

            opts = {**self.api_key_options(), **(query or {})}
            request_spec: dict[str, Any] = {
                "uri": manufacture_api_href(project, endpoint, opts, self._api_root),
                "method": method,
            }
            if body is not None:
                request_spec["json"] = body

            def on_response(err: Exception | None, response: Any, resp_body: Any) -> None:
                if err is not None:
                    logger.error("clouderrors: %s", BadAPIInteraction(describe(project), str(err)))
                cb(err, response, resp_body)

            try:
                self._transport(request_spec, on_response)
            except Exception as exc:
                on_response(exc, None, None)

        return self._request_preflight(callback, ready)
