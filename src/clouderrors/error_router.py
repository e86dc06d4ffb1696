from __future__ import annotations

import traceback
from typing import Any, Mapping

from .error_message import ErrorMessage


def _current_stack() -> str:
    # Drop the frames belonging to this module.
    return "".join(traceback.format_stack()[:-2])


def _populate_from_exception(err: BaseException, message: ErrorMessage) -> None:
    if err.__traceback__ is not None:
        text = "".join(traceback.format_exception(type(err), err, err.__traceback__))
        frame = traceback.extract_tb(err.__traceback__)[-1]
        message.set_file_path(frame.filename).set_line_number(frame.lineno).set_function_name(frame.name)
    else:
        # Never raised: the service needs a stack to group on, use ours.
        text = _current_stack() + "".join(traceback.format_exception_only(type(err), err))
    message.set_message(text)


def _populate_from_mapping(err: Mapping[str, Any], message: ErrorMessage) -> None:
    text = err.get("message")
    if not isinstance(text, str):
        text = str(dict(err))
    message.set_message(text + "\n" + _current_stack())
    if "user" in err:
        message.set_user(err["user"])
    if "file_path" in err:
        message.set_file_path(err["file_path"])
    if "line_number" in err:
        message.set_line_number(err["line_number"])
    if "function_name" in err:
        message.set_function_name(err["function_name"])
    service_context = err.get("service_context")
    if isinstance(service_context, Mapping):
        message.set_service_context(service_context.get("service"), service_context.get("version"))


def populate_error_message(err: Any, message: ErrorMessage) -> ErrorMessage:
    """Normalize an arbitrary reported value into ``message``.

    Exceptions contribute their traceback, mappings may carry explicit fields,
    anything else is stringified with the current stack attached.
    """
    if isinstance(err, BaseException):
        _populate_from_exception(err, message)
    elif isinstance(err, Mapping):
        _populate_from_mapping(err, message)
    else:
        message.set_message(f"{err}\n{_current_stack()}")
    return message
