"""
Pydantic configuration schemas for the logger.

Repository config and per-adapter configs. Everything is optional with
sensible defaults, so a three-line YAML validates:

    sanitization:
      enabled: true
    formatters:
      default: combined

Usage:
    config = LoggerRepositoryConfig.from_yaml("logger.yaml")
    repo = LoggerRepository.get_instance(config)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from generic_logger.formatters import resolve_formatter
from generic_logger.records import CallerInfo, LogLevel
from generic_logger.sanitizers import is_sanitizer


LoggerEnvironment = Literal["dev", "stage", "prod"]


def _resolve_level(value: Any) -> Optional[LogLevel]:
    if value is None:
        return None
    return LogLevel.from_value(value)


# ═══════════════════════════════════════════════════════════════════
#  Adapter configs
# ═══════════════════════════════════════════════════════════════════

class AdapterConfig(BaseModel):
    """Fields every adapter understands. Unknown keys are kept for custom adapters."""
    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    enabled: bool = False
    severity: Optional[LogLevel] = None      # adapter-level minimum level

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value: Any) -> Optional[LogLevel]:
        return _resolve_level(value)


class ConsoleAdapterConfig(AdapterConfig):
    colorize: bool = False
    caller_info: Optional[Callable[[], CallerInfo]] = None


class FileAdapterConfig(AdapterConfig):
    formats: list[Literal["json", "log"]] = ["json"]
    path: Optional[Path] = None
    rotation: Literal["daily", "none"] = "none"
    retention_days: Optional[int] = None
    file_writer: Optional[Callable[..., Any]] = None
    buffer_size: int = 10000                 # in-memory fallback keeps the newest entries

    @field_validator("buffer_size")
    @classmethod
    def _buffer_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"buffer_size must be positive, got {value}")
        return value


class DatabaseAdapterConfig(AdapterConfig):
    connection: Any = None                   # DB-API style, e.g. duckdb.connect()
    table: str = "fact_log"


class SentryAdapterConfig(AdapterConfig):
    sentry_instance: Any = None


class DataDogAdapterConfig(AdapterConfig):
    datadog_instance: Any = None


class LoggingAdapterConfig(AdapterConfig):
    logger_instance: Any = None              # logging.Logger, logger name, or log()-shaped object


# ═══════════════════════════════════════════════════════════════════
#  Repository config
# ═══════════════════════════════════════════════════════════════════

class SanitizationConfig(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    enabled: bool = False
    default_sanitizer: Any = None

    @field_validator("default_sanitizer")
    @classmethod
    def _sanitizer(cls, value: Any) -> Any:
        if value is not None and not is_sanitizer(value):
            raise ValueError(
                f"default_sanitizer must have a sanitize() method, got {type(value).__name__}"
            )
        return value


class FormattersConfig(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    default: Any = None                      # formatter instance or 'json' / 'text' / 'combined'

    @field_validator("default", mode="before")
    @classmethod
    def _formatter(cls, value: Any) -> Any:
        return resolve_formatter(value)


class LoggerRepositoryConfig(BaseModel):
    """
    Top-level repository configuration.

    `adapters` is the legacy adapter section. It is informational only:
    live adapters are managed with register_adapter()/unregister_adapter().
    `severity` is informational for the repository; adapters enforce their own.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    environment: Optional[LoggerEnvironment] = None
    adapters: Optional[dict[str, dict[str, Any]]] = None
    sanitization: Optional[SanitizationConfig] = None
    formatters: Optional[FormattersConfig] = None
    severity: Optional[LogLevel] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value: Any) -> Optional[LogLevel]:
        return _resolve_level(value)

    @property
    def sanitization_enabled(self) -> bool:
        return bool(self.sanitization and self.sanitization.enabled)

    @property
    def default_formatter(self) -> Any:
        return self.formatters.default if self.formatters else None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "LoggerRepositoryConfig":
        """Load and validate from a YAML file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.from_yaml_string(raw)

    @classmethod
    def from_yaml_string(cls, yaml_string: str) -> "LoggerRepositoryConfig":
        """Load and validate from a YAML string."""
        data = yaml.safe_load(yaml_string) or {}
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict) -> "LoggerRepositoryConfig":
        """Load and validate from a dict."""
        return cls.model_validate(data)

    def to_dict(self, exclude_none: bool = True) -> dict:
        return self.model_dump(exclude_none=exclude_none)


def coerce_repository_config(value: Any) -> LoggerRepositoryConfig:
    if value is None:
        return LoggerRepositoryConfig()
    if isinstance(value, LoggerRepositoryConfig):
        return value
    return LoggerRepositoryConfig.model_validate(value)


# ═══════════════════════════════════════════════════════════════════
#  Environment helper
# ═══════════════════════════════════════════════════════════════════

def get_environment() -> LoggerEnvironment:
    """LOGGER_ENV or APP_ENV; anything other than stage/prod means dev."""
    env = os.environ.get("LOGGER_ENV") or os.environ.get("APP_ENV") or "dev"
    env = env.strip().lower()
    return env if env in ("stage", "prod") else "dev"


def get_logger_config(env: LoggerEnvironment | None = None) -> LoggerRepositoryConfig:
    """
    Example environment-based configuration.

    Vendor adapters are listed disabled: they need a client instance handed
    to register_adapter(). Adapters still have to be registered explicitly.
    """
    env = env or get_environment()
    return LoggerRepositoryConfig(
        environment=env,
        adapters={
            "console": {"enabled": env != "prod", "colorize": env == "dev"},
            "file": {
                "enabled": env in ("dev", "stage"),
                "formats": ["json", "log"] if env == "dev" else ["log"],
            },
            "sentry": {"enabled": False},
            "datadog": {"enabled": False},
            "logging": {"enabled": False},
        },
        sanitization=SanitizationConfig(enabled=True),
        severity=LogLevel.ERROR if env == "prod" else LogLevel.DEBUG,
    )
