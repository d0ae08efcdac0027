"""Level-filtered logging with an optional callback sink."""

from __future__ import annotations

import sys
import threading
from enum import IntEnum
from typing import Callable, Optional

LogCallback = Callable[[int, str], None]

# Longest message handed to a sink; longer messages are cut.
MAX_MESSAGE_LENGTH = 4094

# Levels used by console_log.
LEVEL_ERROR = 0
LEVEL_WARN = 1
LEVEL_INFO = 2
LEVEL_DEBUG = 3
LEVEL_VERBOSE = 4


class LogLevel(IntEnum):
    """Syslog-style severity levels; lower values are more severe."""

    EMERG = 0
    ALERT = 1
    CRIT = 2
    ERR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


def _format(message: str, args: tuple) -> str:
    return message % args if args else message


class Logger:
    """Thread-safe logger that drops messages less severe than its level.

    Messages go to the callback if one is set, otherwise to stderr.
    """

    def __init__(
        self,
        level: int = LogLevel.WARNING,
        callback: Optional[LogCallback] = None,
    ) -> None:
        self._level_lock = threading.Lock()
        self._callback_lock = threading.Lock()
        self._level = int(level)
        self._callback = callback

    @property
    def level(self) -> int:
        with self._level_lock:
            return self._level

    def set_level(self, level: int) -> None:
        with self._level_lock:
            self._level = int(level)

    def set_callback(self, callback: Optional[LogCallback]) -> None:
        with self._callback_lock:
            self._callback = callback

    def log(self, level: int, message: str, *args) -> None:
        """Format ``message`` with ``args`` and emit it if ``level`` passes."""
        with self._level_lock:
            if level > self._level:
                return
        text = _format(message, args)[:MAX_MESSAGE_LENGTH]
        with self._callback_lock:
            callback = self._callback
            if callback is not None:
                callback(level, text)
                return
        print(text, file=sys.stderr)


def console_log(level: int, message: str, *args) -> None:
    """Print a formatted message on stdout regardless of level."""
    print(_format(message, args))