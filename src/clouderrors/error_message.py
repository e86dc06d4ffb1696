from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .types import RequestInformation, ServiceContext


def _str_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


class ErrorMessage:
    """One reported error occurrence, serialized as the ``events:report`` body.

    All setters return the instance so calls can be chained::

        ErrorMessage().set_message(trace).set_http_method("GET").set_url("/")
    """

    def __init__(self) -> None:
        self.event_time = datetime.now(timezone.utc).isoformat()
        self.service_context = ServiceContext()
        self.message = ""
        self.http_request: dict[str, Any] = {
            "method": "",
            "url": "",
            "user_agent": "",
            "referrer": "",
            "response_status_code": 0,
            "remote_ip": "",
        }
        self.user = ""
        self.report_location: dict[str, Any] = {
            "file_path": "",
            "line_number": 0,
            "function_name": "",
        }

    def set_event_time_to_now(self) -> ErrorMessage:
        self.event_time = datetime.now(timezone.utc).isoformat()
        return self

    def set_service_context(self, service: Any = None, version: Any = None) -> ErrorMessage:
        self.service_context = ServiceContext(
            service=_str_or_empty(service),
            version=_str_or_empty(version),
        )
        return self

    def set_message(self, message: Any) -> ErrorMessage:
        self.message = _str_or_empty(message)
        return self

    def set_http_method(self, method: Any) -> ErrorMessage:
        self.http_request["method"] = _str_or_empty(method)
        return self

    def set_url(self, url: Any) -> ErrorMessage:
        self.http_request["url"] = _str_or_empty(url)
        return self

    def set_user_agent(self, user_agent: Any) -> ErrorMessage:
        self.http_request["user_agent"] = _str_or_empty(user_agent)
        return self

    def set_referrer(self, referrer: Any) -> ErrorMessage:
        self.http_request["referrer"] = _str_or_empty(referrer)
        return self

    def set_response_status_code(self, status_code: Any) -> ErrorMessage:
        if isinstance(status_code, int) and not isinstance(status_code, bool):
            self.http_request["response_status_code"] = status_code
        else:
            self.http_request["response_status_code"] = 0
        return self

    def set_remote_ip(self, remote_ip: Any) -> ErrorMessage:
        self.http_request["remote_ip"] = _str_or_empty(remote_ip)
        return self

    def set_user(self, user: Any) -> ErrorMessage:
        self.user = _str_or_empty(user)
        return self

    def set_file_path(self, file_path: Any) -> ErrorMessage:
        self.report_location["file_path"] = _str_or_empty(file_path)
        return self

    def set_line_number(self, line_number: Any) -> ErrorMessage:
        if isinstance(line_number, int) and not isinstance(line_number, bool):
            self.report_location["line_number"] = line_number
        else:
            self.report_location["line_number"] = 0
        return self

    def set_function_name(self, function_name: Any) -> ErrorMessage:
        self.report_location["function_name"] = _str_or_empty(function_name)
        return self

    def consume_request_information(self, info: RequestInformation | None) -> ErrorMessage:
        if not isinstance(info, RequestInformation):
            return self
        return (
            self.set_http_method(info.method)
            .set_url(info.url)
            .set_user_agent(info.user_agent)
            .set_referrer(info.referrer)
            .set_response_status_code(info.status_code)
            .set_remote_ip(info.remote_address)
        )

    def to_dict(self) -> dict[str, Any]:
        http = self.http_request
        loc = self.report_location
        return {
            "eventTime": self.event_time,
            "serviceContext": {
                "service": self.service_context.service,
                "version": self.service_context.version,
            },
            "message": self.message,
            "context": {
                "httpRequest": {
                    "method": http["method"],
                    "url": http["url"],
                    "userAgent": http["user_agent"],
                    "referrer": http["referrer"],
                    "responseStatusCode": http["response_status_code"],
                    "remoteIp": http["remote_ip"],
                },
                "user": self.user,
                "reportLocation": {
                    "filePath": loc["file_path"],
                    "lineNumber": loc["line_number"],
                    "functionName": loc["function_name"],
                },
            },
        }
