"""Levelled logger writing to the console, and warnings and errors also to a file."""

from __future__ import annotations

import logging
import sys
from enum import IntEnum
from typing import Union

_FORMAT = "%(tag)s %(asctime)s %(filename)s:%(lineno)d: %(message)s"
_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


class LogLevel(IntEnum):
    """Minimum severity that gets written."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


_LEVEL_NAMES = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warn": LogLevel.WARN,
    "warning": LogLevel.WARN,
    "error": LogLevel.ERROR,
}


def parse_log_level(level: str) -> LogLevel:
    """Level for a name, case-insensitively; unknown names give INFO."""
    return _LEVEL_NAMES.get(level.lower(), LogLevel.INFO)


class Logger:
    """Debug and info go to stdout; warnings and errors go to stdout and the log file."""

    def __init__(self, log_file_path, level: Union[str, LogLevel] = "info") -> None:
        self.level = level if isinstance(level, LogLevel) else parse_log_level(level)
        formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)

        self._file_handler: logging.FileHandler | None = logging.FileHandler(
            log_file_path, mode="a", encoding="utf-8"
        )
        self._file_handler.setLevel(logging.WARNING)
        self._file_handler.setFormatter(formatter)

        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)

        self._sink = logging.Logger(f"slotbooking.{id(self):x}", logging.DEBUG)
        self._sink.propagate = False
        self._sink.addHandler(console)
        self._sink.addHandler(self._file_handler)

    def close(self) -> None:
        """Close the log file; console output keeps working."""
        if self._file_handler is not None:
            self._sink.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _emit(self, severity: int, tag: str, message: str, args: tuple) -> None:
        self._sink.log(severity, message, *args, extra={"tag": tag}, stacklevel=3)

    def debug(self, message: str, *args) -> None:
        """Log a debug message (console only)."""
        if self.level <= LogLevel.DEBUG:
            self._emit(logging.DEBUG, "[DEBUG]", message, args)

    def info(self, message: str, *args) -> None:
        """Log an informational message (console only)."""
        if self.level <= LogLevel.INFO:
            self._emit(logging.INFO, "[INFO]", message, args)

    def warn(self, message: str, *args) -> None:
        """Log a warning (console and file)."""
        if self.level <= LogLevel.WARN:
            self._emit(logging.WARNING, "[WARN]", message, args)

    def error(self, message: str, *args) -> None:
        """Log an error (console and file)."""
        if self.level <= LogLevel.ERROR:
            self._emit(logging.ERROR, "[ERROR]", message, args)

    def fatal(self, message: str, *args) -> None:
        """Log an error regardless of level, then exit with status 1."""
        self._emit(logging.ERROR, "[ERROR]", message, args)
        self.close()
        raise SystemExit(1)