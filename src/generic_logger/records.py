"""
Log levels and per-call log context.

Levels use stdlib-logging-compatible numeric values so adapters can compare
them; the wire representation is the lower-case label ("debug", "info",
"warn", "error").
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Mapping, Optional


class LogLevel(IntEnum):
    """Log levels, ascending severity."""
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40

    @property
    def label(self) -> str:
        """Wire name: 'debug', 'info', 'warn', 'error'."""
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Resolve level from string name, case-insensitive."""
        name_upper = name.strip().upper()
        if name_upper == "WARNING":
            name_upper = "WARN"
        try:
            return cls[name_upper]
        except KeyError:
            raise ValueError(
                f"Unknown log level '{name}'. "
                f"Valid levels: {', '.join(m.label for m in cls)}"
            )

    @classmethod
    def from_value(cls, value: "LogLevel | int | str") -> "LogLevel":
        """Resolve level from a member, int or string."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_name(value)
        if isinstance(value, int) and not isinstance(value, bool):
            for member in cls:
                if member.value == value:
                    return member
            raise ValueError(
                f"No level with value {value}. "
                f"Valid values: {', '.join(f'{m.label}={m.value}' for m in cls)}"
            )
        raise TypeError(f"Expected LogLevel, int or str, got {type(value).__name__}")


@dataclass(frozen=True)
class CallerInfo:
    """Origin of a log call, as reported by a caller-info provider."""
    file: Optional[str] = None
    function: Optional[str] = None


@dataclass(frozen=True)
class LogContext:
    """
    Optional bag attached to one log call.

    `data` and `metadata` are the sanitization targets; `error` is sanitized
    when it is an object. `sanitizer` and `skip_sanitization` steer the
    repository and are never forwarded as content.

    Immutable: the repository derives copies with `dataclasses.replace`,
    the caller's instance is never changed.
    """
    tag: Optional[str] = None
    file: Optional[str] = None
    function: Optional[str] = None
    data: Any = None
    error: Any = None
    timestamp: Optional[datetime] = None
    metadata: Optional[Mapping[str, Any]] = None
    sanitizer: Any = None
    skip_sanitization: bool = False

    @classmethod
    def coerce(cls, value: "LogContext | Mapping[str, Any] | None") -> "LogContext | None":
        """Accept None, a LogContext, or a mapping of LogContext fields."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            known = {f.name for f in fields(cls)}
            kwargs: dict[str, Any] = {}
            for key, val in value.items():
                name = _CAMEL_ALIASES.get(key, key)
                if name not in known:
                    raise ValueError(f"Unknown log context field '{key}'")
                kwargs[name] = val
            return cls(**kwargs)
        raise TypeError(
            f"Expected LogContext, mapping or None, got {type(value).__name__}"
        )

    def with_updates(self, **changes: Any) -> "LogContext":
        """Shallow copy with some fields replaced."""
        return replace(self, **changes)


_CAMEL_ALIASES = {"skipSanitization": "skip_sanitization"}


# ── Helpers ───────────────────────────────────────────────────────────

def iso_timestamp(ts: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and 'Z' suffix."""
    ts = ts or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_stack(error: BaseException) -> str | None:
    """Traceback text for a raised exception, None if it was never raised."""
    if error.__traceback__ is None:
        return None
    return "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    ).rstrip()


def error_fields(error: BaseException) -> dict[str, Any]:
    """Expand an exception to the {name, message, stack} shape."""
    return {
        "name": type(error).__name__,
        "message": str(error),
        "stack": format_stack(error),
    }
