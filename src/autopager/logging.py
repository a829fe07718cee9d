"""
Logging for autopager.

A ``Logger`` wraps a named standard library logger. Keyword arguments passed
with a message are appended as ``key=value`` context, and ``bind`` returns a
logger that adds its own context to every line (the operation name, say).
Values logged under a cursor key are never written verbatim.
"""

import copy
import hashlib
import logging
import sys
from typing import Any, Dict, Optional, TextIO, Union

# Context keys whose values are continuation tokens
CURSOR_KEYS = frozenset({"cursor", "next_token", "next_cursor"})


def redact_cursor(cursor: Optional[str]) -> str:
    """Render a pagination cursor for log output.

    Cursors are opaque service tokens and can embed account or resource data, so
    only a short digest is logged. The digest still lets two log lines be
    correlated to the same token.
    """
    if cursor is None or cursor == "":
        return "<none>"
    digest = hashlib.sha256(str(cursor).encode("utf-8")).hexdigest()[:8]
    return f"<cursor:{digest}>"


def format_context(context: Dict[str, Any]) -> str:
    parts = []
    for key, value in context.items():
        if key in CURSOR_KEYS:
            value = redact_cursor(value)
        parts.append(f"{key}={value}")
    return " ".join(parts)


class Logger:
    """Named logger with bound context and cursor redaction."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s"

    def __init__(
        self,
        name: str = "autopager",
        level: Union[int, str] = logging.INFO,
        format_string: Optional[str] = None,
        log_to_console: bool = True,
        log_file: Optional[str] = None,
        stream: Optional[TextIO] = None,
    ):
        """Initialize the logger.

        Args:
            name: Logger name
            level: Minimum logging level, as a number or a level name
            format_string: Custom format string for log messages
            log_to_console: Whether to log to ``stream``
            log_file: Optional file path to log to
            stream: Console stream; stderr when not given, since command
                    output owns stdout
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.context: Dict[str, Any] = {}
        formatter = logging.Formatter(format_string or self.DEFAULT_FORMAT)
        self._install_handlers(formatter, log_to_console, stream, log_file)

    def _install_handlers(
        self,
        formatter: logging.Formatter,
        log_to_console: bool,
        stream: Optional[TextIO],
        log_file: Optional[str],
    ) -> None:
        # Re-initializing a logger by name replaces its handlers
        self.logger.handlers.clear()

        handlers: list = []
        if log_to_console:
            handlers.append(logging.StreamHandler(stream or sys.stderr))
        if log_file:
            handlers.append(logging.FileHandler(log_file))

        for handler in handlers:
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        if not handlers:
            self.logger.addHandler(logging.NullHandler())

    @property
    def name(self) -> str:
        return self.logger.name

    def set_level(self, level: Union[int, str]) -> None:
        self.logger.setLevel(level)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def bind(self, **context: Any) -> "Logger":
        """Return a logger that shares this one's handlers and adds ``context``
        to every message."""
        child = copy.copy(self)
        child.context = {**self.context, **context}
        return child

    def debug(self, message: str, **context: Any) -> None:
        self.log(self.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(self.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(self.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.log(self.ERROR, message, **context)

    def critical(self, message: str, **context: Any) -> None:
        self.log(self.CRITICAL, message, **context)

    def log(self, level: int, message: str, **context: Any) -> None:
        """Log ``message`` at ``level`` with bound and per-call context.

        Per-call context wins over bound context with the same key.
        """
        if not self.logger.isEnabledFor(level):
            return
        merged = {**self.context, **context}
        if merged:
            message = f"{message} - {format_context(merged)}"
        self.logger.log(level, message)


class DefaultLogger(Logger):
    """Default logger for autopager components.

    Console logging to stderr with the standard format.
    """

    def __init__(
        self,
        name: str = "autopager",
        level: Union[int, str] = logging.INFO,
        log_file: Optional[str] = None,
    ):
        super().__init__(name=name, level=level, log_file=log_file)
