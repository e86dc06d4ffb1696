"""Query builder for listing error events of a group."""

from __future__ import annotations

import enum
from typing import Any, Callable, Mapping

from .errors import ValidationError


class TimePeriod(str, enum.Enum):
    PERIOD_ONE_HOUR = "PERIOD_ONE_HOUR"
    PERIOD_SIX_HOURS = "PERIOD_SIX_HOURS"
    PERIOD_ONE_DAY = "PERIOD_ONE_DAY"
    PERIOD_ONE_WEEK = "PERIOD_ONE_WEEK"
    PERIOD_30_DAYS = "PERIOD_30_DAYS"


def time_periods() -> dict[str, str]:
    return {p.name: p.value for p in TimePeriod}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_non_empty_record(value: Any) -> bool:
    return isinstance(value, Mapping) and len(value) > 0


def prefix_query_object_for_export(prefix: str, record: Mapping[str, Any]) -> dict[str, Any]:
    """Lift each entry of ``record`` to a top-level ``<prefix>.<key>`` entry.

    The service expects path-style query keys, not nested structures.
    """
    return {f"{prefix}.{key}": value for key, value in record.items()}


# wire name -> inclusion predicate, in export order
_EXPORT_FILTER: dict[str, Callable[[Any], bool]] = {
    "groupId": lambda v: isinstance(v, str),
    "serviceFilter": _is_non_empty_record,
    "timeRange": _is_non_empty_record,
    "pageSize": _is_number,
    "pageToken": lambda v: isinstance(v, str),
}

_FLATTENED = frozenset({"serviceFilter", "timeRange"})


class ListErrorOptions:
    """Chainable builder for an events list query.

    Usage::

        opts = ListErrorOptions().set_group_id("abc").set_time_range("PERIOD_ONE_DAY")
        opts.export_as_request_options()
        # {'groupId': 'abc', 'timeRange.period': 'PERIOD_ONE_DAY'}
    """

    def __init__(self) -> None:
        self.group_id: Any = None
        self.service_filter: dict[str, str] | None = None
        self.time_range: dict[str, str] | None = None
        self.page_size: Any = None
        self.page_token: Any = None

    def __repr__(self) -> str:
        return f"ListErrorOptions({self.export_as_request_options()!r})"

    def set_group_id(self, group_id: Any) -> ListErrorOptions:
        self.group_id = group_id
        return self

    def set_service_filter(
        self, service: Any = None, version: Any = None, resource_type: Any = None
    ) -> ListErrorOptions:
        candidates = {"service": service, "version": version, "resourceType": resource_type}
        self.service_filter = {k: v for k, v in candidates.items() if isinstance(v, str)}
        return self

    def set_time_range(self, time_range: TimePeriod | str) -> ListErrorOptions:
        # Unknown names are rejected by populate_request_options, not here.
        period = time_range.value if isinstance(time_range, TimePeriod) else time_range
        self.time_range = {"period": period}
        return self

    def set_page_size(self, page_size: Any) -> ListErrorOptions:
        self.page_size = page_size
        return self

    def set_page_token(self, page_token: Any) -> ListErrorOptions:
        self.page_token = page_token
        return self

    def export_as_request_options(self) -> dict[str, Any]:
        fields = {
            "groupId": self.group_id,
            "serviceFilter": self.service_filter,
            "timeRange": self.time_range,
            "pageSize": self.page_size,
            "pageToken": self.page_token,
        }
        exported: dict[str, Any] = {}
        for name, predicate in _EXPORT_FILTER.items():
            value = fields[name]
            if not predicate(value):
                continue
            if name in _FLATTENED:
                exported.update(prefix_query_object_for_export(name, value))
            else:
                exported[name] = value
        return exported


def populate_request_options(user_options: Any) -> ListErrorOptions | ValidationError:
    """Build :class:`ListErrorOptions` from caller input.

    Accepts a group id string, an existing builder (returned unchanged) or a
    mapping. The first invalid field produces a returned ``ValidationError``.
    """
    if isinstance(user_options, str):
        return ListErrorOptions().set_group_id(user_options)
    if isinstance(user_options, ListErrorOptions):
        return user_options
    if not isinstance(user_options, Mapping) or not isinstance(user_options.get("group_id"), str):
        return ValidationError(
            "Must provide a group_id in either the form of a string or a mapping "
            "with a group_id key that is a string"
        )

    opts = ListErrorOptions().set_group_id(user_options["group_id"])

    if "service_filter" in user_options:
        service_filter = user_options["service_filter"]
        if not isinstance(service_filter, Mapping):
            return ValidationError("Optional argument service_filter must be a mapping if supplied")
        for sub in ("service", "version", "resource_type"):
            if sub in service_filter and not isinstance(service_filter[sub], str):
                return ValidationError(
                    f"Optional argument service_filter.{sub} must be of type string if supplied"
                )
        opts.set_service_filter(
            service_filter.get("service"),
            service_filter.get("version"),
            service_filter.get("resource_type"),
        )

    if "time_range" in user_options:
        time_range = user_options["time_range"]
        if not isinstance(time_range, str) or time_range not in time_periods():
            return ValidationError(
                "Optional argument time_range must be one of the following if supplied: "
                + ", ".join(time_periods())
            )
        opts.set_time_range(time_range)

    if "page_size" in user_options:
        if not _is_number(user_options["page_size"]):
            return ValidationError("Optional argument page_size must be of type number if supplied")
        opts.set_page_size(user_options["page_size"])

    if "page_token" in user_options:
        if not isinstance(user_options["page_token"], str):
            return ValidationError("Optional argument page_token must be of type string if supplied")
        opts.set_page_token(user_options["page_token"])

    return opts
