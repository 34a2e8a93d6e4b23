"""Logging configuration using loguru.

Library modules log either through loguru directly or through
``logging.getLogger(__name__)``; the latter (and httpx) are bridged into
loguru so one sink sees everything.  Stream and paginator workers bind a
``producer`` field, which the console format shows in brackets::

    12:00:01.123 | WARNING  | [event-stream[100]] poll failed, retrying in 5.0s: ...
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Record

# stdlib loggers that are too chatty at the chosen level.
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "hpack": logging.WARNING,
}

_CONSOLE_HEAD = "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
_CONSOLE_PRODUCER = "<magenta>[{extra[producer]}]</magenta> "
_CONSOLE_TAIL = "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>\n{exception}"


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the real call-site, not this handler.
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_format(record: Record) -> str:
    if "producer" in record["extra"]:
        return _CONSOLE_HEAD + _CONSOLE_PRODUCER + _CONSOLE_TAIL
    return _CONSOLE_HEAD + _CONSOLE_TAIL


def setup_logging(level: str = "INFO", *, json_logs: bool = False) -> None:
    """Configure loguru as the sole logging sink.

    Call once at process startup.  Logs go to stderr so that
    ``chatpull events`` keeps stdout for JSON lines.  With *json_logs* each
    record is written as one JSON object instead.
    """
    level = level.upper()

    logger.remove()
    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_console_format)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    logger.debug("Logging configured (level={}, json={})", level, json_logs)
