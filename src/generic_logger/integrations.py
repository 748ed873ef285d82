"""
Vendor integrations: Sentry, DataDog and the stdlib `logging` bridge.

None of these import a vendor SDK. The caller hands in an already
initialized client (e.g. the `sentry_sdk` module) through the adapter
config; the adapter inspects its shape once at initialize() and keeps the
detected profile for the adapter's lifetime. A client with no recognized
shape leaves the adapter disabled.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from generic_logger.adapters import LogAdapter
from generic_logger.config import (
    DataDogAdapterConfig,
    LoggingAdapterConfig,
    SentryAdapterConfig,
)
from generic_logger.diagnostics import warn
from generic_logger.records import LogContext, LogLevel, error_fields


def _has(obj: Any, name: str) -> bool:
    return callable(getattr(obj, name, None))


def _context_fields(context: LogContext | None, metadata: dict | None) -> dict[str, Any]:
    """tag/file/function/data/error/metadata with empty entries dropped."""
    if context is None:
        return {}
    error = context.error
    if isinstance(error, BaseException):
        error = error_fields(error)
    fields = {
        "tag": context.tag,
        "file": context.file,
        "function": context.function,
        "data": context.data,
        "error": error,
        "metadata": metadata,
    }
    return {k: v for k, v in fields.items() if v is not None}


def _close_client(client: Any, *method_names: str) -> None:
    """Call the first teardown method the client has."""
    for name in method_names:
        if _has(client, name):
            getattr(client, name)()
            return


# ═══════════════════════════════════════════════════════════════════
#  Sentry
# ═══════════════════════════════════════════════════════════════════

class SentryLoggerAdapter(LogAdapter):
    """
    Every event becomes a breadcrumb; warn and error events are also
    captured, as an exception when the context carries one and as a
    message otherwise.

    Expects the sentry_sdk surface: add_breadcrumb(), capture_message(),
    capture_exception().
    """

    config_model = SentryAdapterConfig

    SENTRY_LEVELS = {
        LogLevel.DEBUG: "debug",
        LogLevel.INFO: "info",
        LogLevel.WARN: "warning",
        LogLevel.ERROR: "error",
    }

    def __init__(self) -> None:
        super().__init__()
        self._client: Any = None

    def _setup(self) -> None:
        client = self._config.sentry_instance
        if client is None or not (
            _has(client, "capture_message") or _has(client, "add_breadcrumb")
        ):
            warn("SentryLoggerAdapter: no usable Sentry client configured, adapter disabled")
            self._enabled = False
            return
        self._client = client

    def emit(self, level, message, context):
        client = self._client
        sentry_level = self.SENTRY_LEVELS[level]
        metadata = self.visible_metadata(context)
        tag = context.tag if context and context.tag else "app"

        if _has(client, "add_breadcrumb"):
            client.add_breadcrumb(
                message=message,
                level=sentry_level,
                category=tag,
                data=context.data if context else None,
            )

        if level < LogLevel.WARN:
            return

        ctx = context or LogContext()
        tags = {"tag": tag}
        if ctx.file:
            tags["file"] = ctx.file
        if ctx.function:
            tags["function"] = ctx.function
        extras: dict[str, Any] = {}
        if ctx.data is not None:
            extras["data"] = ctx.data
        if metadata:
            extras["metadata"] = metadata

        error = ctx.error
        if isinstance(error, BaseException) and _has(client, "capture_exception"):
            client.capture_exception(error, tags=tags, extras=extras)
        elif _has(client, "capture_message"):
            if error is not None:
                extras["error"] = (
                    error_fields(error) if isinstance(error, BaseException) else error
                )
            client.capture_message(message, level=sentry_level, tags=tags, extras=extras)

    def destroy(self) -> None:
        super().destroy()
        if self._client is not None:
            try:
                _close_client(self._client, "flush", "close")
            finally:
                self._client = None


# ═══════════════════════════════════════════════════════════════════
#  DataDog
# ═══════════════════════════════════════════════════════════════════

class DataDogProfile(str, Enum):
    """Client shape detected at initialize()."""
    LOGGER = "logger"        # client.logger.<level>(message, attributes)
    RUM = "rum"              # client.add_action / client.add_error
    LOGS = "logs"            # client.<level>(message, attributes)
    GENERIC = "generic"      # client.log(message, attributes)


class DataDogLoggerAdapter(LogAdapter):
    """
    DataDog logs/RUM bridge.

    Profiles are checked in order: LOGGER, RUM, LOGS, GENERIC. The profile
    is fixed for the adapter's lifetime.
    """

    config_model = DataDogAdapterConfig

    def __init__(self) -> None:
        super().__init__()
        self._client: Any = None
        self._profile: Optional[DataDogProfile] = None

    @property
    def profile(self) -> Optional[DataDogProfile]:
        return self._profile

    def _setup(self) -> None:
        client = self._config.datadog_instance
        self._profile = self._detect_profile(client) if client is not None else None
        if self._profile is None:
            warn("DataDogLoggerAdapter: unrecognized DataDog client, adapter disabled")
            self._enabled = False
            return
        self._client = client

    @staticmethod
    def _detect_profile(client: Any) -> Optional[DataDogProfile]:
        inner = getattr(client, "logger", None)
        if inner is not None and any(_has(inner, m) for m in ("info", "error", "log")):
            return DataDogProfile.LOGGER
        if _has(client, "add_action") and _has(client, "add_error"):
            return DataDogProfile.RUM
        if _has(client, "info") and _has(client, "error"):
            return DataDogProfile.LOGS
        if _has(client, "log"):
            return DataDogProfile.GENERIC
        return None

    def emit(self, level, message, context):
        attributes = _context_fields(context, self.visible_metadata(context))
        attributes["level"] = level.label

        if self._profile is DataDogProfile.LOGGER:
            self._call_level_method(self._client.logger, level, message, attributes)
        elif self._profile is DataDogProfile.RUM:
            error = context.error if context else None
            if level >= LogLevel.ERROR:
                self._client.add_error(
                    error if isinstance(error, BaseException) else message, attributes
                )
            else:
                self._client.add_action(message, attributes)
        elif self._profile is DataDogProfile.LOGS:
            self._call_level_method(self._client, level, message, attributes)
        else:
            self._client.log(message, attributes)

    @staticmethod
    def _call_level_method(target: Any, level: LogLevel, message: str, attributes: dict) -> None:
        names = ("warn", "warning") if level is LogLevel.WARN else (level.label,)
        for name in names:
            if _has(target, name):
                getattr(target, name)(message, attributes)
                return
        if _has(target, "log"):
            target.log(message, attributes)

    def destroy(self) -> None:
        super().destroy()
        if self._client is not None:
            try:
                _close_client(self._client, "stop", "close")
            finally:
                self._client = None
                self._profile = None


# ═══════════════════════════════════════════════════════════════════
#  stdlib logging bridge
# ═══════════════════════════════════════════════════════════════════

class LoggingLoggerAdapter(LogAdapter):
    """
    Forward events to a stdlib logging.Logger, or to any object with a
    log(level_name, message, meta) method.

    logger_instance may be a Logger, a LoggerAdapter, a logger name, or a
    log()-shaped object. Context travels in `extra` for stdlib loggers.
    """

    config_model = LoggingAdapterConfig

    def __init__(self) -> None:
        super().__init__()
        self._target: Any = None
        self._stdlib = False

    def _setup(self) -> None:
        target = self._config.logger_instance
        if isinstance(target, str):
            target = logging.getLogger(target)

        if isinstance(target, (logging.Logger, logging.LoggerAdapter)):
            self._stdlib = True
        elif target is not None and _has(target, "log"):
            self._stdlib = False
        else:
            warn("LoggingLoggerAdapter: no usable logger configured, adapter disabled")
            self._enabled = False
            return
        self._target = target

    def emit(self, level, message, context):
        meta = _context_fields(context, self.visible_metadata(context))

        if not self._stdlib:
            self._target.log(level.label, message, meta)
            return

        error = context.error if context else None
        exc_info = None
        if isinstance(error, BaseException):
            exc_info = (type(error), error, error.__traceback__)
        self._target.log(int(level), message, exc_info=exc_info, extra=meta)

    def destroy(self) -> None:
        super().destroy()
        target, self._target = self._target, None
        # stdlib loggers belong to the host application
        if target is not None and not self._stdlib:
            _close_client(target, "end", "close")
