"""
Log formatters.

The repository formats each event at most once and hands the result to every
adapter, which picks the representation it needs:
  - text:     "[INFO] 2024-11-03T12:34:56.789Z [Auth] [login:auth.py] User logged in {...}"
  - json:     {"timestamp", "level", "message", "tag", "file", "function", "data", "error", "metadata"}
  - combined: both of the above
"""

from __future__ import annotations

import json
import reprlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from generic_logger.records import LogContext, LogLevel, error_fields, iso_timestamp


@dataclass(frozen=True)
class FormattedOutput:
    """Formatter result; either slot may be absent."""
    text: Optional[str] = None
    json: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.text is not None:
            out["text"] = self.text
        if self.json is not None:
            out["json"] = self.json
        return out


class LogFormatter(ABC):
    """Base formatter. Transforms (level, message, context) → FormattedOutput."""

    @abstractmethod
    def format(
        self,
        level: LogLevel,
        message: str,
        context: LogContext | None = None,
    ) -> FormattedOutput: ...


class PlainTextFormatter(LogFormatter):
    """
    Human-readable single entry, extra lines for error and metadata.
    Example: [INFO] 2024-11-03T12:34:56.789Z [Auth] User logged in {"userId": 123}
    """

    def format(self, level, message, context=None):
        ctx = context or LogContext()
        parts = [f"[{LogLevel.from_value(level).label.upper()}]", iso_timestamp(ctx.timestamp)]

        location = location_block(ctx)
        context_parts = [p for p in (ctx.tag, location) if p]
        if context_parts:
            parts.append(" ".join(context_parts))

        parts.append(message)
        text = " ".join(parts)

        if ctx.data is not None:
            encoded = to_json(ctx.data)
            text += f" {encoded}" if encoded is not None else f" [data: {fallback_text(ctx.data)}]"

        if ctx.error is not None:
            if isinstance(ctx.error, BaseException):
                details = error_fields(ctx.error)
                text += f"\nError: {details['name']}: {details['message']}"
                if details["stack"]:
                    text += f"\n{details['stack']}"
            else:
                encoded = to_json(ctx.error)
                text += f"\nError: {encoded if encoded is not None else fallback_text(ctx.error)}"

        if ctx.metadata is not None:
            encoded = to_json(ctx.metadata)
            text += f"\nMetadata: {encoded if encoded is not None else fallback_text(ctx.metadata)}"

        return FormattedOutput(text=text)


class JsonFormatter(LogFormatter):
    """Structured record for aggregators and file/database adapters."""

    def format(self, level, message, context=None):
        ctx = context or LogContext()
        obj: dict[str, Any] = {
            "timestamp": iso_timestamp(ctx.timestamp),
            "level": LogLevel.from_value(level).label,
            "message": message,
        }
        if ctx.tag:
            obj["tag"] = ctx.tag
        if ctx.file:
            obj["file"] = ctx.file
        if ctx.function:
            obj["function"] = ctx.function
        if ctx.data is not None:
            obj["data"] = ctx.data
        if ctx.error is not None:
            if isinstance(ctx.error, BaseException):
                obj["error"] = error_fields(ctx.error)
            else:
                obj["error"] = ctx.error
        if ctx.metadata is not None:
            obj["metadata"] = ctx.metadata
        return FormattedOutput(json=obj)


class CombinedFormatter(LogFormatter):
    """Delegates to the text and JSON formatters and merges both outputs."""

    def __init__(self) -> None:
        self._json = JsonFormatter()
        self._text = PlainTextFormatter()

    def format(self, level, message, context=None):
        return FormattedOutput(
            text=self._text.format(level, message, context).text,
            json=self._json.format(level, message, context).json,
        )


FORMATTERS: dict[str, type[LogFormatter]] = {
    "json": JsonFormatter,
    "text": PlainTextFormatter,
    "plain": PlainTextFormatter,
    "combined": CombinedFormatter,
}


def resolve_formatter(value: Any) -> Any:
    """Formatter instance from a name ('json', 'text', 'combined') or pass-through."""
    if value is None or not isinstance(value, str):
        if value is not None and not callable(getattr(value, "format", None)):
            raise TypeError(
                f"Formatter must have a format() method, got {type(value).__name__}"
            )
        return value
    try:
        return FORMATTERS[value.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown formatter '{value}'. Valid formatters: {', '.join(sorted(FORMATTERS))}"
        )


# ── Helpers ───────────────────────────────────────────────────────────

def location_block(ctx: LogContext) -> str:
    """'[function:file]' or '' when neither is known."""
    parts = [p for p in (ctx.function, ctx.file) if p]
    return f"[{':'.join(parts)}]" if parts else ""


def to_json(value: Any) -> str | None:
    """Compact JSON, or None if the value cannot be serialized."""
    try:
        return json.dumps(value, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError):
        return None


def fallback_text(value: Any) -> str:
    """str() for scalars, depth- and length-limited repr for containers."""
    try:
        if isinstance(value, (dict, list, tuple, set, frozenset)):
            return reprlib.repr(value)
        return str(value)
    except Exception:
        return f"<{type(value).__name__}>"


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseException):
        return error_fields(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
