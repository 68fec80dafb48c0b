"""
Structured Logging for sqlchain

JSON structured logs with correlation IDs, OpenTelemetry trace context,
builder identifiers and masking of credentials (and, optionally, string
literals) in logged SQL.
"""

import json
import logging
import re
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from opentelemetry import trace

from sqlchain.application.config import LoggingConfig

# Context variables for correlation tracking
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_SQL_STRING_LITERAL = re.compile(r"'(?:[^'\\]|\\.|'')*'")


@dataclass
class SensitiveDataConfig:
    """Configuration for sensitive data masking."""

    credential_patterns: list[str] = field(
        default_factory=lambda: [
            r"password",
            r"passwd",
            r"api[_-]?key",
            r"secret[_-]?key",
            r"access[_-]?token",
            r"token",
        ]
    )

    # Replace every quoted literal in logged SQL with '?'
    mask_sql_literals: bool = False

    mask_replacement: str = "***MASKED***"

    excluded_fields: set[str] = field(default_factory=lambda: {"password", "passwd", "secret"})


class QueryLogRecord(logging.LogRecord):
    """Log record carrying correlation, trace and builder fields."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        self.correlation_id = correlation_id_var.get()

        span = trace.get_current_span()
        if span.is_recording():
            span_context = span.get_span_context()
            self.trace_id = format(span_context.trace_id, "032x") if span_context.trace_id else None
            self.span_id = format(span_context.span_id, "016x") if span_context.span_id else None
        else:
            self.trace_id = None
            self.span_id = None


class SensitiveDataMasker:
    """Masks sensitive data in log messages and extra fields."""

    def __init__(self, config: SensitiveDataConfig) -> None:
        self.config = config
        self._compiled_patterns = self._compile_patterns()

    def _compile_patterns(self) -> list[re.Pattern[str]]:
        compiled = []
        for pattern in self.config.credential_patterns:
            try:
                # key:value, key=value and "key": "value" pairs
                full_pattern = rf'("{pattern}":\s*"[^"]*"|\b{pattern}=\S+|\b{pattern}:\s*\S+)'
                compiled.append(re.compile(full_pattern, re.IGNORECASE))
            except re.error as e:
                logging.getLogger(__name__).warning(f"Invalid regex pattern '{pattern}': {e}")
        return compiled

    def mask_message(self, message: str) -> str:
        """Mask credentials, and SQL string literals when configured."""
        masked_message = message

        if self.config.mask_sql_literals:
            masked_message = _SQL_STRING_LITERAL.sub("'?'", masked_message)

        for pattern in self._compiled_patterns:
            masked_message = pattern.sub(lambda m: self._replace_value(m.group(0)), masked_message)

        return masked_message

    def mask_extra_fields(self, extra: dict[str, Any]) -> dict[str, Any]:
        if not extra:
            return extra

        masked_extra = {}
        for key, value in extra.items():
            if key.lower() in self.config.excluded_fields:
                continue

            if self._is_sensitive_field(key):
                masked_extra[key] = self.config.mask_replacement
            elif isinstance(value, str):
                masked_extra[key] = self.mask_message(value)
            elif isinstance(value, dict):
                masked_extra[key] = self.mask_extra_fields(value)
            else:
                masked_extra[key] = value

        return masked_extra

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(re.search(pattern, field_lower) for pattern in self.config.credential_patterns)

    def _replace_value(self, match: str) -> str:
        if match.startswith('"'):
            key_part = match.split(":", 1)[0]
            return f'{key_part}: "{self.config.mask_replacement}"'
        elif "=" in match:
            key_part = match.split("=", 1)[0]
            return f"{key_part}={self.config.mask_replacement}"
        elif ":" in match:
            key_part = match.split(":", 1)[0]
            return f"{key_part}: {self.config.mask_replacement}"
        return self.config.mask_replacement


_STANDARD_FIELDS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "correlation_id",
        "trace_id",
        "span_id",
        "builder_id",
        "operation",
    }
)


class QueryJSONFormatter(logging.Formatter):
    """JSON formatter for structured query logs."""

    def __init__(
        self,
        sensitive_data_config: SensitiveDataConfig | None = None,
        include_extra: bool = True,
        sort_keys: bool = True,
    ) -> None:
        super().__init__()
        self.include_extra = include_extra
        self.sort_keys = sort_keys
        self.masker = SensitiveDataMasker(sensitive_data_config or SensitiveDataConfig())

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": self.masker.mask_message(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in ("correlation_id", "trace_id", "span_id"):
            value = getattr(record, name, None)
            if value:
                log_entry[name] = value

        query_fields = {
            name: getattr(record, name)
            for name in ("builder_id", "operation")
            if getattr(record, name, None)
        }
        if query_fields:
            log_entry["query"] = query_fields

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra = {
                key: self._serialize_value(value)
                for key, value in record.__dict__.items()
                if key not in _STANDARD_FIELDS and not key.startswith("_")
            }
            if extra:
                log_entry["extra"] = self.masker.mask_extra_fields(extra)

        return json.dumps(log_entry, sort_keys=self.sort_keys, default=self._serialize_value)

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, Decimal):
            return float(value)
        elif isinstance(value, (set, frozenset)):
            return list(value)
        elif hasattr(value, "__dict__"):
            return str(value)
        return value


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str, None, None]:
    """Context manager for correlation ID scope."""
    if correlation_id is None:
        correlation_id = generate_correlation_id()

    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


def setup_structured_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: str | None = None,
    sensitive_data_config: SensitiveDataConfig | None = None,
) -> None:
    """
    Setup structured logging.

    Args:
        level: Logging level
        format_type: Formatter type ('json' or 'text')
        log_file: Optional log file path
        sensitive_data_config: Sensitive data masking configuration
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter: logging.Formatter
    if format_type == "json":
        formatter = QueryJSONFormatter(sensitive_data_config)
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, level.upper()))

    logging.setLogRecordFactory(QueryLogRecord)

    logging.info("Structured logging configured successfully")


def configure_logging(config: LoggingConfig) -> None:
    """Setup structured logging from a ``LoggingConfig``."""
    setup_structured_logging(
        level=config.level,
        format_type=config.format,
        log_file=config.file,
        sensitive_data_config=SensitiveDataConfig(mask_sql_literals=config.mask_sql_literals),
    )
