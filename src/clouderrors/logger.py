from __future__ import annotations

import logging
import os
from typing import Any, Mapping

LOGGER_NAME = "clouderrors"
LOG_LEVEL_ENV = "GCLOUD_ERRORS_LOGLEVEL"
DEFAULT_LOG_LEVEL = 2  # warn

# 0 silences the package logger entirely.
_LEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.DEBUG,
}


def _parse_level(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        level = value
    elif isinstance(value, str) and value.strip().isdigit():
        level = int(value.strip())
    else:
        return None
    return min(max(level, 0), 5)


def create_logger(given_level: Any = None, environ: Mapping[str, str] | None = None) -> logging.Logger:
    """Return the package logger with its level resolved.

    Precedence:
      1. GCLOUD_ERRORS_LOGLEVEL environment variable
      2. log_level given in the runtime configuration
      3. warn
    """
    env = os.environ if environ is None else environ
    level = _parse_level(env.get(LOG_LEVEL_ENV))
    if level is None:
        level = _parse_level(given_level)
    if level is None:
        level = DEFAULT_LOG_LEVEL

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_LEVELS[level])
    return logger
