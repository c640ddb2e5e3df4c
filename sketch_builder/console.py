"""Console logging with the colored success/error/info markers."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO

LOGGER_NAME = "sketch_builder"

RESET = "\033[0m"
COLORS = {
    "error": "\033[31m",
    "warning": "\033[33m",
    "success": "\033[32m",
    "info": "\033[34m",
    "dim": "\033[2m",
    "blue": "\033[34m",
    "grey": "\033[90m",
}


def supports_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class ConsoleFormatter(logging.Formatter):
    """Prefix records with a colored marker.

    ERROR and WARNING records get ``error``/``warning``; any record may set
    ``extra={"marker": "success"}`` (or ``"info"``) explicitly.
    """

    def __init__(self, *, color: bool = True) -> None:
        super().__init__()
        self.color = color

    def paint(self, text: str, style: str) -> str:
        if not self.color or style not in COLORS:
            return text
        return f"{COLORS[style]}{text}{RESET}"

    def format(self, record: logging.LogRecord) -> str:
        marker = getattr(record, "marker", None)
        if marker is None and record.levelno >= logging.ERROR:
            marker = "error"
        elif marker is None and record.levelno >= logging.WARNING:
            marker = "warning"

        message = record.getMessage()
        if marker:
            message = f"{self.paint(marker, marker)} {message}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class _Styler:
    """Inline styling for message fragments (file names, timings)."""

    def __init__(self) -> None:
        self.color = False

    def __call__(self, text: object, style: str) -> str:
        if not self.color:
            return str(text)
        return f"{COLORS[style]}{text}{RESET}"


style = _Styler()


def configure_logging(*, verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """Install the console handler on the package logger and return it."""

    stream = stream or sys.stderr
    color = supports_color(stream)
    style.color = color

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ConsoleFormatter(color=color))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
