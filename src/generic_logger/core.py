"""
LoggerRepository: the central log-routing point.

One repository, many adapters. Every log() call passes through:
  1. the enabled gate (disabled → return, no work at all)
  2. sanitizer selection and redaction
  3. optional formatting, once, attached for adapters to reuse
  4. fan-out to every adapter in registration order, each isolated

Nothing raised inside the pipeline reaches the caller; problems are reported
on the diagnostic channel (generic_logger.diagnostics).
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from generic_logger.adapters import FORMATTED_OUTPUT_KEY, LogAdapter
from generic_logger.config import (
    LoggerRepositoryConfig,
    SanitizationConfig,
    coerce_repository_config,
)
from generic_logger.diagnostics import warn
from generic_logger.records import LogContext, LogLevel
from generic_logger.sanitizers import DefaultSanitizer, sanitizer_registry

_NON_OBJECT_ERRORS = (str, bytes, int, float, bool)


class LoggerRepository:
    """
    Singleton log repository.

    Usage:
        repo = LoggerRepository.get_instance({"sanitization": {"enabled": True}})
        repo.register_adapter("console", ConsoleLoggerAdapter(), {"enabled": True})
        repo.enable()
        repo.log("info", "User logged in", {"tag": "Auth", "data": {"user_id": 42}})

    Can also be constructed directly and passed around explicitly.
    """

    _instance: Optional["LoggerRepository"] = None
    _lock = threading.Lock()

    def __init__(self, config: LoggerRepositoryConfig | dict | None = None) -> None:
        self._config = coerce_repository_config(config)
        self._adapters: dict[str, LogAdapter] = {}
        self._adapters_lock = threading.Lock()
        self._enabled = False
        self._default_sanitizer = self._pick_default_sanitizer(self._config)

    @classmethod
    def get_instance(
        cls, config: LoggerRepositoryConfig | dict | None = None
    ) -> "LoggerRepository":
        """Get or create the singleton. `config` is only used on creation."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """
        Destroy and drop the singleton. Intended for test isolation.
        Destruction errors are ignored.
        """
        with cls._lock:
            instance, cls._instance = cls._instance, None
        if instance is not None:
            try:
                instance.destroy()
            except Exception:
                pass

    # ── Adapter Management ────────────────────────────────────────

    def register_adapter(
        self,
        name: str,
        adapter: LogAdapter,
        config: Any = None,
    ) -> None:
        """
        Initialize (when config is given) and add the adapter under `name`.

        Only adapters reporting is_enabled() are added. A same-name adapter
        is replaced without being destroyed.
        """
        if config is not None:
            try:
                adapter.initialize(config)
            except Exception as error:
                warn(f"Failed to initialize adapter '{name}', adapter not registered", error)
                return

        try:
            enabled = adapter.is_enabled()
        except Exception as error:
            warn(f"Adapter '{name}' failed is_enabled(), adapter not registered", error)
            return

        if enabled:
            with self._adapters_lock:
                self._adapters[name] = adapter

    def unregister_adapter(self, name: str) -> None:
        """Destroy and remove an adapter. No-op when absent."""
        with self._adapters_lock:
            adapter = self._adapters.get(name)
        if adapter is None:
            return

        try:
            adapter.destroy()
        except Exception as error:
            warn(f"Failed to destroy adapter '{name}'", error)
        finally:
            with self._adapters_lock:
                if self._adapters.get(name) is adapter:
                    del self._adapters[name]

    def get_adapter(self, name: str) -> LogAdapter | None:
        with self._adapters_lock:
            return self._adapters.get(name)

    def adapter_names(self) -> list[str]:
        """Registered adapter names, in registration order."""
        with self._adapters_lock:
            return list(self._adapters)

    # ── Gate ──────────────────────────────────────────────────────

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    # ── Core Logging ──────────────────────────────────────────────

    def log(
        self,
        level: LogLevel | str,
        message: str,
        options: LogContext | Mapping[str, Any] | None = None,
    ) -> None:
        """Sanitize, format once and fan out to every adapter. Never raises."""
        if not self._enabled:
            return

        try:
            level = LogLevel.from_value(level)
            context = self.sanitize_context(LogContext.coerce(options))
            context = self._attach_formatted_output(level, message, context)
            with self._adapters_lock:
                adapters = list(self._adapters.items())
        except Exception as error:
            warn("Dropped log event", error)
            return

        for name, adapter in adapters:
            try:
                adapter.log(level, message, context)
            except Exception as error:
                warn(f"Adapter '{name}' failed to log", error)

    def sanitize_context(self, options: LogContext | None) -> LogContext | None:
        """
        Derive the sanitized context for one call.

        Sanitizer priority: per-call → tag registry → default (when
        sanitization is enabled) → none. Only data, metadata and object
        errors are sanitized; the caller's context is never modified.
        """
        if options is None or options.skip_sanitization:
            return options

        sanitizer = options.sanitizer
        if sanitizer is None and options.tag:
            sanitizer = sanitizer_registry.get(options.tag)
        if sanitizer is None and self._config.sanitization_enabled:
            sanitizer = self._default_sanitizer
        if sanitizer is None:
            return options

        changes: dict[str, Any] = {}
        if options.data is not None:
            changes["data"] = sanitizer.sanitize(options.data)
        if options.metadata is not None:
            changes["metadata"] = sanitizer.sanitize(options.metadata)
        if options.error is not None and not isinstance(options.error, _NON_OBJECT_ERRORS):
            changes["error"] = sanitizer.sanitize(options.error)
        return options.with_updates(**changes)

    def _attach_formatted_output(
        self, level: LogLevel, message: str, context: LogContext | None
    ) -> LogContext | None:
        formatter = self._config.default_formatter
        if formatter is None:
            return context

        try:
            output = formatter.format(level, message, context)
        except Exception as error:
            warn(f"Formatter {type(formatter).__name__} failed, event sent unformatted", error)
            return context

        base = context or LogContext()
        if base.metadata is not None and not isinstance(base.metadata, Mapping):
            warn("Metadata is not a mapping, formatted output not attached")
            return context
        metadata = dict(base.metadata or {})
        metadata[FORMATTED_OUTPUT_KEY] = output
        return base.with_updates(metadata=metadata)

    # ── Sanitizers ────────────────────────────────────────────────

    def register_sanitizer(self, tag: str, sanitizer: Any) -> None:
        """Register a tag-specific sanitizer in the process-wide registry."""
        sanitizer_registry.register(tag, sanitizer)

    def unregister_sanitizer(self, tag: str) -> None:
        sanitizer_registry.unregister(tag)

    # ── Configuration ─────────────────────────────────────────────

    def get_config(self) -> LoggerRepositoryConfig:
        """Shallow copy of the live config."""
        return self._config.model_copy()

    def update_config(self, partial: LoggerRepositoryConfig | Mapping[str, Any]) -> None:
        """
        Shallow-merge top-level fields into the live config.

        Adapters cannot be (re)configured this way: a non-empty `adapters`
        section only triggers a warning.
        """
        partial = coerce_repository_config(partial)
        updates = {name: getattr(partial, name) for name in partial.model_fields_set}

        if updates.get("adapters"):
            warn(
                "Configuring adapters through update_config() is deprecated and ignored "
                "by the live adapter set, use register_adapter()/unregister_adapter()"
            )

        self._config = self._config.model_copy(update=updates)

        sanitization = updates.get("sanitization")
        if isinstance(sanitization, SanitizationConfig) and sanitization.default_sanitizer is not None:
            self._default_sanitizer = sanitization.default_sanitizer

    @staticmethod
    def _pick_default_sanitizer(config: LoggerRepositoryConfig) -> Any:
        if config.sanitization and config.sanitization.default_sanitizer is not None:
            return config.sanitization.default_sanitizer
        return DefaultSanitizer()

    # ── Status ────────────────────────────────────────────────────

    def status(self) -> dict:
        """Current repository state for display."""
        formatter = self._config.default_formatter
        with self._adapters_lock:
            adapters = {
                name: {"type": type(adapter).__name__}
                for name, adapter in self._adapters.items()
            }
        return {
            "enabled": self._enabled,
            "environment": self._config.environment,
            "adapters": adapters,
            "sanitization": {
                "enabled": self._config.sanitization_enabled,
                "default_sanitizer": type(self._default_sanitizer).__name__,
            },
            "formatter": type(formatter).__name__ if formatter is not None else None,
            "severity": self._config.severity.label if self._config.severity else None,
        }

    # ── Cleanup ───────────────────────────────────────────────────

    def destroy(self) -> None:
        """Disable, tear down every adapter concurrently and clear the map."""
        self._enabled = False
        with self._adapters_lock:
            adapters = list(self._adapters.items())
            self._adapters.clear()
        if not adapters:
            return

        with ThreadPoolExecutor(max_workers=len(adapters)) as pool:
            futures = {name: pool.submit(adapter.destroy) for name, adapter in adapters}
        for name, future in futures.items():
            error = future.exception()
            if error is not None:
                warn(f"Failed to destroy adapter '{name}'", error)
