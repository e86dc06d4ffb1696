from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class ServiceContext:
    service: str = ""
    version: str = ""


@dataclass
class RequestInformation:
    """HTTP fields pulled out of a framework request/response pair."""

    method: str = ""
    url: str = ""
    user_agent: str = ""
    referrer: str = ""
    status_code: int = 0
    remote_address: str = ""


@dataclass
class Options:
    project_id: str | None = None
    key: str | None = None
    service_context: dict[str, str] = field(default_factory=dict)
    report_uncaught_exceptions: bool = True
    ignore_environment_check: bool = False
    log_level: int | None = None
    credentials: Any = None
    key_filename: str | None = None


# (error, response, body)
RequestCallback = Callable[[Optional[Exception], Any, Any], None]
