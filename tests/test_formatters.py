"""
Tests for text, JSON and combined formatters.
"""

import json
from datetime import datetime, timezone

import pytest

from generic_logger.formatters import (
    CombinedFormatter,
    FormattedOutput,
    JsonFormatter,
    PlainTextFormatter,
    fallback_text,
    location_block,
    resolve_formatter,
    to_json,
)
from generic_logger.records import LogContext, LogLevel


TS = datetime(2024, 11, 3, 12, 34, 56, 789000, tzinfo=timezone.utc)


class Unserializable:
    def __repr__(self):
        return "<Unserializable>"

    def __str__(self):
        return "unserializable"


def nested(depth):
    root = {}
    node = root
    for _ in range(depth):
        node["n"] = {}
        node = node["n"]
    return root


# ═══════════════════════════════════════════════════════════════════
#  PlainTextFormatter
# ═══════════════════════════════════════════════════════════════════

class TestPlainTextFormatter:
    def test_basic(self):
        out = PlainTextFormatter().format(LogLevel.INFO, "hello", LogContext(timestamp=TS))
        assert out.text == "[INFO] 2024-11-03T12:34:56.789Z hello"
        assert out.json is None

    def test_tag_and_location(self):
        ctx = LogContext(tag="[Auth]", file="auth.py", function="login", timestamp=TS)
        out = PlainTextFormatter().format(LogLevel.WARN, "slow login", ctx)
        assert out.text == "[WARN] 2024-11-03T12:34:56.789Z [Auth] [login:auth.py] slow login"

    def test_data_as_compact_json(self):
        ctx = LogContext(data={"user_id": 123}, timestamp=TS)
        out = PlainTextFormatter().format("info", "User logged in", ctx)
        assert out.text.endswith('User logged in {"user_id":123}')

    def test_unserializable_data_degrades(self):
        ctx = LogContext(data=Unserializable(), timestamp=TS)
        out = PlainTextFormatter().format(LogLevel.DEBUG, "x", ctx)
        assert out.text.endswith("x [data: unserializable]")

    def test_deeply_nested_values_degrade(self):
        deep = nested(100_000)
        ctx = LogContext(data=deep, error=deep, metadata=deep, timestamp=TS)
        out = PlainTextFormatter().format(LogLevel.INFO, "deep", ctx)

        first, error_line, metadata_line = out.text.split("\n")
        assert first.startswith("[INFO] 2024-11-03T12:34:56.789Z deep [data: {'n': {")
        assert error_line.startswith("Error: {'n': {")
        assert metadata_line.startswith("Metadata: {'n': {")
        assert len(out.text) < 1000

    def test_exception_with_stack(self):
        try:
            raise ValueError("bad input")
        except ValueError as e:
            ctx = LogContext(error=e, timestamp=TS)
        out = PlainTextFormatter().format(LogLevel.ERROR, "failed", ctx)
        lines = out.text.split("\n")
        assert lines[1] == "Error: ValueError: bad input"
        assert lines[2].startswith("Traceback")

    def test_non_exception_error(self):
        ctx = LogContext(error={"code": 500}, timestamp=TS)
        out = PlainTextFormatter().format(LogLevel.ERROR, "failed", ctx)
        assert out.text.endswith('\nError: {"code":500}')

    def test_metadata(self):
        ctx = LogContext(metadata={"request_id": "abc"}, timestamp=TS)
        out = PlainTextFormatter().format(LogLevel.INFO, "done", ctx)
        assert out.text.endswith('\nMetadata: {"request_id":"abc"}')

    def test_no_context(self):
        out = PlainTextFormatter().format(LogLevel.INFO, "bare")
        assert out.text.startswith("[INFO] ")
        assert out.text.endswith(" bare")


# ═══════════════════════════════════════════════════════════════════
#  JsonFormatter
# ═══════════════════════════════════════════════════════════════════

class TestJsonFormatter:
    def test_minimal_fields(self):
        out = JsonFormatter().format(LogLevel.INFO, "hello", LogContext(timestamp=TS))
        assert out.json == {
            "timestamp": "2024-11-03T12:34:56.789Z",
            "level": "info",
            "message": "hello",
        }
        assert out.text is None

    def test_all_fields(self):
        ctx = LogContext(
            tag="Auth",
            file="auth.py",
            function="login",
            data={"a": 1},
            metadata={"m": 2},
            timestamp=TS,
        )
        out = JsonFormatter().format(LogLevel.WARN, "msg", ctx)
        assert out.json["level"] == "warn"
        assert out.json["tag"] == "Auth"
        assert out.json["file"] == "auth.py"
        assert out.json["function"] == "login"
        assert out.json["data"] == {"a": 1}
        assert out.json["metadata"] == {"m": 2}

    def test_exception_expanded(self):
        out = JsonFormatter().format(LogLevel.ERROR, "failed", LogContext(error=KeyError("k")))
        assert out.json["error"] == {"name": "KeyError", "message": "'k'", "stack": None}

    def test_other_error_passthrough(self):
        out = JsonFormatter().format(LogLevel.ERROR, "failed", LogContext(error="plain"))
        assert out.json["error"] == "plain"

    def test_serializable_with_default_str(self):
        out = JsonFormatter().format(LogLevel.INFO, "x", LogContext(data={"when": TS}))
        assert json.loads(json.dumps(out.json, default=str))["data"]["when"]


# ═══════════════════════════════════════════════════════════════════
#  CombinedFormatter / resolution
# ═══════════════════════════════════════════════════════════════════

class TestCombinedFormatter:
    def test_both_outputs(self):
        out = CombinedFormatter().format(LogLevel.ERROR, "boom", LogContext(timestamp=TS))
        assert out.text == "[ERROR] 2024-11-03T12:34:56.789Z boom"
        assert out.json["message"] == "boom"
        assert out.to_dict().keys() == {"text", "json"}

    def test_to_dict_only_populated(self):
        assert FormattedOutput(text="t").to_dict() == {"text": "t"}
        assert FormattedOutput().to_dict() == {}


class TestResolveFormatter:
    @pytest.mark.parametrize("name,cls", [
        ("json", JsonFormatter),
        ("text", PlainTextFormatter),
        ("plain", PlainTextFormatter),
        ("COMBINED", CombinedFormatter),
    ])
    def test_names(self, name, cls):
        assert isinstance(resolve_formatter(name), cls)

    def test_instance_passthrough(self):
        f = JsonFormatter()
        assert resolve_formatter(f) is f
        assert resolve_formatter(None) is None

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown formatter"):
            resolve_formatter("xml")

    def test_object_without_format(self):
        with pytest.raises(TypeError):
            resolve_formatter(42)


class TestHelpers:
    def test_location_block(self):
        assert location_block(LogContext(function="f", file="a.py")) == "[f:a.py]"
        assert location_block(LogContext(file="a.py")) == "[a.py]"
        assert location_block(LogContext()) == ""

    def test_to_json(self):
        assert to_json({"a": (1, 2)}) == '{"a":[1,2]}'
        assert to_json(Unserializable()) is None

    def test_to_json_too_deep(self):
        assert to_json(nested(100_000)) is None

    def test_fallback_text(self):
        assert fallback_text(Unserializable()) == "unserializable"
        assert fallback_text(nested(100_000)).startswith("{'n': {'n': {")
        assert fallback_text(list(range(1000))).endswith("...]")
