"""
Log adapters (output destinations).

One repository, many adapters. Each adapter receives every event the
repository lets through, already sanitized, and owns its own lifecycle:
initialize(config) → log(...)* → destroy().

LogAdapter.log() never raises: failures inside emit() are reported on the
diagnostic channel so one broken destination cannot affect the others.

Built-in: Console, File, Database (DuckDB-style connection), Mock (in-memory).
Vendor integrations live in generic_logger.integrations.
"""

from __future__ import annotations

import inspect
import json
import os
import re
import sys
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

from generic_logger.config import (
    AdapterConfig,
    ConsoleAdapterConfig,
    DatabaseAdapterConfig,
    FileAdapterConfig,
)
from generic_logger.diagnostics import warn
from generic_logger.formatters import (
    CombinedFormatter,
    FormattedOutput,
    JsonFormatter,
    fallback_text,
    location_block,
    to_json,
)
from generic_logger.records import CallerInfo, LogContext, LogLevel, error_fields, iso_timestamp


FORMATTED_OUTPUT_KEY = "_formattedOutput"


class LogAdapter(ABC):
    """Base adapter. Subclasses implement emit(); log() adds gating and isolation."""

    config_model: type[AdapterConfig] = AdapterConfig

    def __init__(self) -> None:
        self._config = self.config_model()
        self._enabled = False

    # ── Lifecycle ─────────────────────────────────────────────────

    def initialize(self, config: AdapterConfig | dict | None = None) -> None:
        """Validate config and enable the adapter if config.enabled and setup succeeds."""
        self._enabled = False
        self._config = self._coerce_config(config)
        if not self._config.enabled:
            return
        # _setup may switch itself off when a required client is missing
        self._enabled = True
        try:
            self._setup()
        except Exception:
            self._enabled = False
            raise

    def _setup(self) -> None:
        """Acquire resources. Override in adapters that hold any."""

    def destroy(self) -> None:
        """Release resources. Override if adapter holds any."""
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def config(self) -> AdapterConfig:
        return self._config

    # ── Logging ───────────────────────────────────────────────────

    def log(
        self,
        level: LogLevel | str,
        message: str,
        context: LogContext | None = None,
    ) -> None:
        if not self._enabled:
            return
        try:
            level = LogLevel.from_value(level)
            if self.accepts(level):
                self.emit(level, message, context)
        except Exception as error:
            warn(f"{type(self).__name__} failed to write log entry", error)

    @abstractmethod
    def emit(self, level: LogLevel, message: str, context: LogContext | None) -> None:
        """Write one entry. Called only when enabled and level is accepted."""
        ...

    def accepts(self, level: LogLevel) -> bool:
        """Adapter-level severity threshold."""
        severity = self._config.severity
        return severity is None or level >= severity

    # ── Helpers ───────────────────────────────────────────────────

    def _coerce_config(self, config: Any) -> AdapterConfig:
        if config is None:
            return self.config_model()
        if isinstance(config, self.config_model):
            return config
        if isinstance(config, BaseModel):
            return self.config_model.model_validate(dict(config))
        return self.config_model.model_validate(config)

    @staticmethod
    def formatted_output(context: LogContext | None) -> FormattedOutput | None:
        """Pre-computed output attached by the repository, if any."""
        if context is None or not context.metadata:
            return None
        value = context.metadata.get(FORMATTED_OUTPUT_KEY)
        return value if isinstance(value, FormattedOutput) else None

    @staticmethod
    def visible_metadata(context: LogContext | None) -> dict[str, Any] | None:
        """Caller metadata without the repository's formatted-output slot."""
        if context is None or context.metadata is None:
            return None
        meta = {k: v for k, v in context.metadata.items() if k != FORMATTED_OUTPUT_KEY}
        return meta or None


# ═══════════════════════════════════════════════════════════════════
#  Console
# ═══════════════════════════════════════════════════════════════════

def stack_caller_info() -> CallerInfo:
    """
    Caller-info provider: first stack frame outside this package.
    Pass as ConsoleAdapterConfig.caller_info to get automatic attribution.
    """
    frame = inspect.currentframe()
    try:
        while frame is not None:
            module = frame.f_globals.get("__name__", "")
            if module != "generic_logger" and not module.startswith("generic_logger."):
                func = frame.f_code.co_name
                return CallerInfo(
                    file=os.path.basename(frame.f_code.co_filename),
                    function=None if func == "<module>" else func,
                )
            frame = frame.f_back
    finally:
        del frame
    return CallerInfo()


class ConsoleLoggerAdapter(LogAdapter):
    """
    Writes to stdout/stderr with optional ANSI colours.
    WARN+ goes to stderr, everything else to stdout.
    """

    config_model = ConsoleAdapterConfig

    COLORS = {
        LogLevel.DEBUG: "\033[32m",   # green
        LogLevel.INFO: "\033[36m",    # cyan
        LogLevel.WARN: "\033[33m",    # yellow
        LogLevel.ERROR: "\033[31m",   # red
    }
    RESET = "\033[0m"

    def emit(self, level, message, context):
        ctx = context or LogContext()
        label = f"[{level.label.upper()}]"
        if self._config.colorize:
            label = f"{self.COLORS[level]}{label}{self.RESET}"

        line = f"{label} {iso_timestamp(ctx.timestamp)} {self._format_message(message, ctx)}"
        if ctx.data is not None:
            line += f" {to_json(ctx.data) or fallback_text(ctx.data)}"

        if ctx.error is not None:
            if isinstance(ctx.error, BaseException):
                details = error_fields(ctx.error)
                line += f"\n  Error: {details['name']}: {details['message']}"
                if details["stack"] and level >= LogLevel.ERROR:
                    line += f"\n{details['stack']}"
            else:
                line += f"\n  Error: {to_json(ctx.error) or fallback_text(ctx.error)}"

        metadata = self.visible_metadata(ctx)
        if metadata:
            line += f"\n  Metadata: {to_json(metadata) or fallback_text(metadata)}"

        stream = sys.stderr if level >= LogLevel.WARN else sys.stdout
        print(line, file=stream, flush=True)

    def _format_message(self, message: str, ctx: LogContext) -> str:
        if ctx.tag:
            return f"{ctx.tag} {message}"

        location = location_block(ctx)
        if not location and self._config.caller_info is not None:
            caller = self._config.caller_info()
            location = location_block(LogContext(file=caller.file, function=caller.function))

        return f"{location} {message}" if location else message


# ═══════════════════════════════════════════════════════════════════
#  File
# ═══════════════════════════════════════════════════════════════════

class FileLoggerAdapter(LogAdapter):
    """
    Writes JSON lines and/or plain-text entries.

    Destination, first match wins:
      1. config.file_writer(text, level, context): caller-supplied writer
      2. config.path: append to file, optional daily rotation
      3. in-memory buffer of the newest config.buffer_size entries,
         read back with get_buffered_logs()
    A failing file_writer falls back to the buffer.
    """

    config_model = FileAdapterConfig

    def __init__(self) -> None:
        super().__init__()
        self._buffer: deque[str] = deque(maxlen=self._config.buffer_size)
        self._formatter = CombinedFormatter()
        self._current_date: Optional[str] = None
        self._current_path: Optional[Path] = None
        self._file = None
        self._lock = threading.Lock()

    def _setup(self) -> None:
        with self._lock:
            self._buffer = deque(self._buffer, maxlen=self._config.buffer_size)
        if self._config.file_writer is None and self._config.path is None:
            warn(
                "FileLoggerAdapter: no file_writer or path configured, "
                "entries are kept in memory only"
            )

    def emit(self, level, message, context):
        output = self.formatted_output(context)
        if output is None:
            ctx = context or LogContext()
            ctx = ctx.with_updates(metadata=self.visible_metadata(ctx))
            output = self._formatter.format(level, message, ctx)

        lines = []
        if "json" in self._config.formats and output.json is not None:
            lines.append(json.dumps(output.json, default=str))
        if "log" in self._config.formats and output.text is not None:
            lines.append(output.text)
        if not lines:
            return
        text = "\n".join(lines) + "\n"

        if self._config.file_writer is not None:
            try:
                self._config.file_writer(text, level, context)
            except Exception as error:
                warn("FileLoggerAdapter: file_writer failed, entry buffered", error)
                self._buffer_entry(text)
        elif self._config.path is not None:
            timestamp = (context.timestamp if context else None) or datetime.now(timezone.utc)
            with self._lock:
                self._ensure_file(timestamp)
                self._file.write(text)
                self._file.flush()
        else:
            self._buffer_entry(text)

    def _buffer_entry(self, text: str) -> None:
        with self._lock:
            self._buffer.append(text)

    def _ensure_file(self, timestamp: datetime) -> None:
        """Open or rotate file as needed. Must hold self._lock."""
        date_str = timestamp.strftime("%Y-%m-%d")
        if self._file is not None and (
            self._config.rotation != "daily" or self._current_date == date_str
        ):
            return

        if self._file is not None:
            self._file.close()

        base_path = self._config.path
        base_path.parent.mkdir(parents=True, exist_ok=True)
        if self._config.rotation == "daily":
            suffix = base_path.suffix or ".log"
            file_path = base_path.parent / f"{base_path.stem}_{date_str}{suffix}"
        else:
            file_path = base_path

        self._file = open(file_path, "a", encoding="utf-8")
        self._current_date = date_str
        self._current_path = file_path

    @property
    def current_path(self) -> Optional[Path]:
        return self._current_path

    def destroy(self) -> None:
        super().destroy()
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
                self._current_date = None
            self._buffer.clear()

    def get_buffered_logs(self) -> str:
        with self._lock:
            return "".join(self._buffer)

    def clear_buffer(self) -> None:
        with self._lock:
            self._buffer.clear()

    def cleanup_old_files(self) -> int:
        """Remove rotated files older than retention_days. Returns count removed."""
        base_path = self._config.path
        if base_path is None or not self._config.retention_days:
            return 0
        if not base_path.parent.exists():
            return 0

        cutoff = datetime.now(timezone.utc).timestamp() - (self._config.retention_days * 86400)
        removed = 0
        suffix = base_path.suffix or ".log"

        for f in base_path.parent.glob(f"{base_path.stem}_*{suffix}"):
            if f != self._current_path and f.stat().st_mtime < cutoff:
                f.unlink()
                removed += 1

        return removed


# ═══════════════════════════════════════════════════════════════════
#  Database
# ═══════════════════════════════════════════════════════════════════

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DatabaseLoggerAdapter(LogAdapter):
    """
    Writes one row per event into a log table on an injected connection
    (duckdb.connect() or any DB-API object with execute()).

    Write-through: nothing is buffered, a failed insert is reported and dropped.
    """

    config_model = DatabaseAdapterConfig

    def __init__(self) -> None:
        super().__init__()
        self._connection = None
        self._formatter = JsonFormatter()
        self._lock = threading.Lock()
        self._seq = 0  # Monotonic log_id sequence

    def _setup(self) -> None:
        connection = self._config.connection
        if connection is None or not callable(getattr(connection, "execute", None)):
            warn("DatabaseLoggerAdapter: no usable connection configured, adapter disabled")
            self._enabled = False
            return
        table = self._config.table
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name '{table}'")

        connection.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                log_id BIGINT,
                log_timestamp TIMESTAMP,
                level VARCHAR,
                message VARCHAR,
                tag VARCHAR,
                file_name VARCHAR,
                function_name VARCHAR,
                record VARCHAR
            )
            """
        )
        self._connection = connection

    def emit(self, level, message, context):
        ctx = context or LogContext()
        output = self.formatted_output(ctx)
        if output is None or output.json is None:
            output = self._formatter.format(
                level, message, ctx.with_updates(metadata=self.visible_metadata(ctx))
            )
        timestamp = (ctx.timestamp or datetime.now(timezone.utc))
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)

        with self._lock:
            self._seq += 1
            self._connection.execute(
                f"""
                INSERT INTO {self._config.table} (
                    log_id, log_timestamp, level, message, tag,
                    file_name, function_name, record
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    self._seq,
                    timestamp,
                    level.label,
                    message,
                    ctx.tag,
                    ctx.file,
                    ctx.function,
                    json.dumps(output.json, default=str),
                ],
            )

    @property
    def written_count(self) -> int:
        return self._seq

    def destroy(self) -> None:
        super().destroy()
        self._connection = None


# ═══════════════════════════════════════════════════════════════════
#  Mock (in-memory, for tests)
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MockLogEntry:
    level: LogLevel
    message: str
    context: Optional[LogContext]
    timestamp: datetime


class MockLoggerAdapter(LogAdapter):
    """Keeps every entry in memory with query helpers for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self._logs: list[MockLogEntry] = []
        self._lock = threading.Lock()

    def _setup(self) -> None:
        self.clear_logs()

    def emit(self, level, message, context):
        with self._lock:
            self._logs.append(
                MockLogEntry(level, message, context, datetime.now(timezone.utc))
            )

    def destroy(self) -> None:
        super().destroy()
        self.clear_logs()

    def get_logs(self) -> list[MockLogEntry]:
        with self._lock:
            return list(self._logs)

    def get_logs_by_level(self, level: LogLevel | str) -> list[MockLogEntry]:
        level = LogLevel.from_value(level)
        return [e for e in self.get_logs() if e.level == level]

    def get_logs_by_message(self, pattern: str | re.Pattern) -> list[MockLogEntry]:
        regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
        return [e for e in self.get_logs() if regex.search(e.message)]

    def get_logs_by_tag(self, tag: str) -> list[MockLogEntry]:
        return [e for e in self.get_logs() if e.context is not None and e.context.tag == tag]

    def has_log(self, level: LogLevel | str, message: str | re.Pattern) -> bool:
        regex = re.compile(message, re.IGNORECASE) if isinstance(message, str) else message
        return any(regex.search(e.message) for e in self.get_logs_by_level(level))

    def clear_logs(self) -> None:
        with self._lock:
            self._logs.clear()

    def get_log_count(self) -> int:
        return len(self._logs)

    def get_log_count_by_level(self, level: LogLevel | str) -> int:
        return len(self.get_logs_by_level(level))
