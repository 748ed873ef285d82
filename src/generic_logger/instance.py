"""
Logger: convenience wrapper around the repository.

    from generic_logger import logger, ConsoleLoggerAdapter

    logger.register_adapter("console", ConsoleLoggerAdapter(), {"enabled": True})
    logger.info("Application started")
    logger.error("Payment failed", exc, {"tag": "Payment"})

The repository is enabled by the first register_adapter() call. Until then
calls fall back to a plain line on stderr.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from typing import Any, Optional

from generic_logger.adapters import LogAdapter
from generic_logger.core import LoggerRepository
from generic_logger.diagnostics import warn
from generic_logger.records import LogContext, LogLevel


class Logger:
    """Thin facade over a LoggerRepository (the singleton unless one is given)."""

    def __init__(self, repository: LoggerRepository | None = None) -> None:
        self._repository = repository
        self._enabled_repository: Optional[LoggerRepository] = None

    @property
    def repository(self) -> LoggerRepository:
        return self._repository or LoggerRepository.get_instance()

    @property
    def initialized(self) -> bool:
        return self._enabled_repository is not None and self._enabled_repository is self.repository

    def register_adapter(self, name: str, adapter: LogAdapter, config: Any = None) -> None:
        repository = self.repository
        repository.register_adapter(name, adapter, config)
        if self._enabled_repository is not repository:
            repository.enable()
            self._enabled_repository = repository

    def unregister_adapter(self, name: str) -> None:
        self.repository.unregister_adapter(name)

    def log(
        self,
        level: LogLevel | str,
        message: str,
        context: LogContext | Mapping[str, Any] | None = None,
    ) -> None:
        if not self.initialized:
            try:
                label = LogLevel.from_value(level).label.upper()
            except (TypeError, ValueError):
                label = str(level).upper()
            warn("Logger has no registered adapters yet, writing to stderr")
            print(f"[{label}] {message}", file=sys.stderr)
            return
        self.repository.log(level, message, context)

    def debug(self, message: str, context: LogContext | Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: LogContext | Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: LogContext | Mapping[str, Any] | None = None) -> None:
        self.log(LogLevel.WARN, message, context)

    warning = warn

    def error(
        self,
        message: str,
        error: Any = None,
        context: LogContext | Mapping[str, Any] | None = None,
    ) -> None:
        """Log at ERROR; `error` overrides any error already in the context."""
        if error is not None:
            if isinstance(context, LogContext):
                context = context.with_updates(error=error)
            elif isinstance(context, Mapping):
                context = {**context, "error": error}
            elif context is None:
                context = LogContext(error=error)
        self.log(LogLevel.ERROR, message, context)


logger = Logger()
