from __future__ import annotations

import logging
import sys
import threading
from types import TracebackType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .client import ErrorReporting

logger = logging.getLogger("clouderrors")

REPORT_TIMEOUT_S = 5.0


class UncaughtExceptionHandler:
    """``sys.excepthook`` and ``threading.excepthook`` that report before
    deferring to the previous hooks.

    The previous hook still runs, so the interpreter exits (or the thread
    dies) as it would have.
    """

    def __init__(self, client: ErrorReporting, timeout: float = REPORT_TIMEOUT_S) -> None:
        self._client = client
        self._timeout = timeout
        self._previous: Any = None
        self._previous_thread: Any = None

    def install(self) -> None:
        if self._previous is not None:
            return
        self._previous = sys.excepthook
        self._previous_thread = threading.excepthook
        sys.excepthook = self
        threading.excepthook = self.handle_thread_exception

    def uninstall(self) -> None:
        if self._previous is None:
            return
        if sys.excepthook is self:
            sys.excepthook = self._previous
        if threading.excepthook == self.handle_thread_exception:
            threading.excepthook = self._previous_thread
        self._previous = None
        self._previous_thread = None

    def __call__(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        previous = self._previous or sys.__excepthook__
        if not issubclass(exc_type, KeyboardInterrupt):
            self._report(exc, tb)
        previous(exc_type, exc, tb)

    def handle_thread_exception(self, args: Any) -> None:
        previous = self._previous_thread or threading.__excepthook__
        # SystemExit ends a thread quietly
        if args.exc_value is not None and not issubclass(args.exc_type, SystemExit):
            self._report(args.exc_value, args.exc_traceback)
        previous(args)

    def _report(self, exc: BaseException, tb: TracebackType | None) -> None:
        done = threading.Event()
        try:
            if exc.__traceback__ is None and tb is not None:
                exc = exc.with_traceback(tb)
            self._client.report(exc, callback=lambda *_: done.set())
            if not done.wait(self._timeout):
                logger.warning("clouderrors: timed out reporting uncaught exception")
        except Exception:
            logger.exception("clouderrors: failed to report uncaught exception")
