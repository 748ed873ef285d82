"""
Generic Logger

One log call, many destinations. A singleton repository sanitizes each
event, optionally formats it once, and fans it out to pluggable adapters.
"""

from generic_logger.core import LoggerRepository
from generic_logger.instance import Logger, logger
from generic_logger.records import LogLevel, LogContext, CallerInfo
from generic_logger.diagnostics import LoggerWarning
from generic_logger.sanitizers import (
    Sanitizer,
    DefaultSanitizer,
    SanitizerRegistry,
    sanitizer_registry,
)
from generic_logger.formatters import (
    FormattedOutput,
    LogFormatter,
    PlainTextFormatter,
    JsonFormatter,
    CombinedFormatter,
)
from generic_logger.adapters import (
    LogAdapter,
    ConsoleLoggerAdapter,
    FileLoggerAdapter,
    DatabaseLoggerAdapter,
    MockLoggerAdapter,
    stack_caller_info,
)
from generic_logger.integrations import (
    SentryLoggerAdapter,
    DataDogLoggerAdapter,
    LoggingLoggerAdapter,
)
from generic_logger.config import (
    AdapterConfig,
    ConsoleAdapterConfig,
    FileAdapterConfig,
    DatabaseAdapterConfig,
    SentryAdapterConfig,
    DataDogAdapterConfig,
    LoggingAdapterConfig,
    SanitizationConfig,
    FormattersConfig,
    LoggerRepositoryConfig,
    get_logger_config,
)

__all__ = [
    "LoggerRepository",
    "Logger",
    "logger",
    "LogLevel",
    "LogContext",
    "CallerInfo",
    "LoggerWarning",
    "Sanitizer",
    "DefaultSanitizer",
    "SanitizerRegistry",
    "sanitizer_registry",
    "FormattedOutput",
    "LogFormatter",
    "PlainTextFormatter",
    "JsonFormatter",
    "CombinedFormatter",
    "LogAdapter",
    "ConsoleLoggerAdapter",
    "FileLoggerAdapter",
    "DatabaseLoggerAdapter",
    "MockLoggerAdapter",
    "stack_caller_info",
    "SentryLoggerAdapter",
    "DataDogLoggerAdapter",
    "LoggingLoggerAdapter",
    "AdapterConfig",
    "ConsoleAdapterConfig",
    "FileAdapterConfig",
    "DatabaseAdapterConfig",
    "SentryAdapterConfig",
    "DataDogAdapterConfig",
    "LoggingAdapterConfig",
    "SanitizationConfig",
    "FormattersConfig",
    "LoggerRepositoryConfig",
    "get_logger_config",
]
