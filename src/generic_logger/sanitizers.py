"""
Sanitizers: redaction and masking of sensitive values before they reach
any adapter.

DefaultSanitizer rules:
  - keys containing a sensitive name (password, token, secret, ...) → "[REDACTED]"
  - keys containing a maskable name (email, phone) → partially masked
  - free text → card numbers, e-mails and phone numbers masked in place

Tag-specific sanitizers live in the process-wide `sanitizer_registry`.
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any

from generic_logger.records import error_fields


REDACTED = "[REDACTED]"
CARD_PLACEHOLDER = "[CARD_NUMBER]"
CIRCULAR = "[Circular]"
UNSANITIZABLE = "[UNSANITIZABLE]"

# Substring match on the lower-cased key: "userPassword" is redacted too.
SENSITIVE_FIELDS: tuple[str, ...] = (
    "password",
    "token",
    "apiKey",
    "api_key",
    "accessToken",
    "access_token",
    "refreshToken",
    "refresh_token",
    "secret",
    "secretKey",
    "secret_key",
    "privateKey",
    "private_key",
    "creditCard",
    "credit_card",
    "cardNumber",
    "card_number",
    "cvv",
    "pin",
    "ssn",
    "socialSecurityNumber",
)

MASKABLE_FIELDS: tuple[str, ...] = ("email", "phone", "phoneNumber", "phone_number")

_SENSITIVE_LOWER = tuple(f.lower() for f in SENSITIVE_FIELDS)
_MASKABLE_LOWER = tuple(f.lower() for f in MASKABLE_FIELDS)

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+")
CARD_PATTERN = re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b")
PHONE_PATTERN = re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b")

_PRIMITIVES = (str, bytes, int, float, complex, bool, Enum)


class Sanitizer(ABC):
    """Base sanitizer. Returns a redacted copy; must not raise."""

    @abstractmethod
    def sanitize(self, data: Any) -> Any: ...


def is_sanitizer(obj: Any) -> bool:
    """Duck-typed check: anything with a callable `sanitize`."""
    return callable(getattr(obj, "sanitize", None))


class DefaultSanitizer(Sanitizer):
    """
    Rule-based sanitizer.

    Example:
        DefaultSanitizer().sanitize({"password": "x", "email": "john@example.com"})
        → {"password": "[REDACTED]", "email": "joh***@example.com"}

    Containers already on the current traversal path are replaced with
    "[Circular]", so self-referencing payloads terminate.
    """

    def sanitize(self, data: Any) -> Any:
        try:
            return self._sanitize(data, set())
        except Exception:
            return UNSANITIZABLE

    # ── Traversal ─────────────────────────────────────────────────

    def _sanitize(self, data: Any, path: set[int]) -> Any:
        if data is None:
            return None

        if isinstance(data, _PRIMITIVES):
            return sanitize_string(str(data))

        if isinstance(data, (Mapping, list, tuple, set, frozenset, BaseException)):
            return self._sanitize_container(data, path)

        attrs = getattr(data, "__dict__", None)
        if isinstance(attrs, dict) and attrs and not isinstance(data, type) and not callable(data):
            return self._sanitize_container(data, path)

        return sanitize_string(str(data))

    def _sanitize_container(self, data: Any, path: set[int]) -> Any:
        marker = id(data)
        if marker in path:
            return CIRCULAR
        path.add(marker)
        try:
            if isinstance(data, Mapping):
                return self._sanitize_mapping(data, path)
            if isinstance(data, list):
                return [self._sanitize(item, path) for item in data]
            if isinstance(data, tuple):
                items = [self._sanitize(item, path) for item in data]
                if hasattr(data, "_fields"):
                    return type(data)(*items)
                return tuple(items)
            if isinstance(data, frozenset):
                return frozenset(self._sanitize(item, path) for item in data)
            if isinstance(data, set):
                return {self._sanitize(item, path) for item in data}
            if isinstance(data, BaseException):
                return self._sanitize_exception(data, path)
            return self._sanitize_mapping(vars(data), path)
        finally:
            path.discard(marker)

    def _sanitize_mapping(self, data: Mapping, path: set[int]) -> dict:
        sanitized: dict = {}
        for key, value in data.items():
            lower_key = str(key).lower()
            if should_redact(lower_key):
                sanitized[key] = REDACTED
            elif should_mask(lower_key):
                sanitized[key] = mask_value(lower_key, value)
            else:
                sanitized[key] = self._sanitize(value, path)
        return sanitized

    def _sanitize_exception(self, error: BaseException, path: set[int]) -> Any:
        attrs = self._sanitize_mapping(vars(error), path)
        args = tuple(self._sanitize_arg(arg, path) for arg in error.args)
        cls = type(error)
        # __new__ only: subclass __init__ signatures need not match args
        try:
            clone = cls.__new__(cls, *args)
            clone.args = args
            clone.__dict__.update(attrs)
        except Exception:
            fields = error_fields(error)
            fields["message"] = sanitize_string(fields["message"])
            if fields["stack"] is not None:
                fields["stack"] = sanitize_string(fields["stack"])
            return {**fields, **attrs}
        return clone.with_traceback(error.__traceback__)

    def _sanitize_arg(self, arg: Any, path: set[int]) -> Any:
        # numeric args stay numeric (OSError.errno and friends)
        if arg is None or isinstance(arg, (int, float, complex)):
            return arg
        return self._sanitize(arg, path)


# ── Rules ─────────────────────────────────────────────────────────────

def should_redact(lower_key: str) -> bool:
    return any(field in lower_key for field in _SENSITIVE_LOWER)


def should_mask(lower_key: str) -> bool:
    return any(field in lower_key for field in _MASKABLE_LOWER)


def mask_email(address: str) -> str:
    username, _, domain = address.partition("@")
    return f"{username[:3]}***@{domain}"


def mask_phone(number: str) -> str:
    digits = re.sub(r"\D", "", number)
    return f"***-***-{digits[-4:]}"


def mask_value(lower_key: str, value: Any) -> str:
    """Partially mask a value stored under an e-mail/phone-like key."""
    text = str(value)

    if "email" in lower_key:
        match = EMAIL_PATTERN.search(text)
        if match:
            return mask_email(match.group(0))

    if "phone" in lower_key and PHONE_PATTERN.search(text):
        return mask_phone(text)

    if len(text) > 4:
        return f"{text[:2]}***{text[-2:]}"
    return "***"


def sanitize_string(text: str) -> str:
    """Mask card numbers, e-mails and phone numbers embedded in free text."""
    text = CARD_PATTERN.sub(CARD_PLACEHOLDER, text)
    text = EMAIL_PATTERN.sub(lambda m: mask_email(m.group(0)), text)
    text = PHONE_PATTERN.sub(lambda m: mask_phone(m.group(0)), text)
    return text


# ── Registry ──────────────────────────────────────────────────────────

class SanitizerRegistry:
    """
    Tag → sanitizer mapping. Tags are case-insensitive; the last
    registration for a tag wins. Read on every tagged log call.
    """

    def __init__(self) -> None:
        self._sanitizers: dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, tag: str, sanitizer: Any) -> None:
        if not is_sanitizer(sanitizer):
            raise TypeError(
                f"Sanitizer for tag '{tag}' must have a sanitize() method, "
                f"got {type(sanitizer).__name__}"
            )
        with self._lock:
            self._sanitizers[tag.lower()] = sanitizer

    def unregister(self, tag: str) -> None:
        with self._lock:
            self._sanitizers.pop(tag.lower(), None)

    def get(self, tag: str | None = None) -> Any:
        if not tag:
            return None
        with self._lock:
            return self._sanitizers.get(tag.lower())

    def has(self, tag: str) -> bool:
        with self._lock:
            return tag.lower() in self._sanitizers

    def clear(self) -> None:
        with self._lock:
            self._sanitizers.clear()

    def tags(self) -> list[str]:
        with self._lock:
            return sorted(self._sanitizers)

    def __len__(self) -> int:
        return len(self._sanitizers)


sanitizer_registry = SanitizerRegistry()
