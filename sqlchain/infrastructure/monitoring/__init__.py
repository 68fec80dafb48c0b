"""
Monitoring - Structured logging with correlation and trace context.
"""

from .logging import (
    QueryJSONFormatter,
    SensitiveDataConfig,
    configure_logging,
    correlation_context,
    setup_structured_logging,
)

__all__ = [
    "QueryJSONFormatter",
    "SensitiveDataConfig",
    "configure_logging",
    "correlation_context",
    "setup_structured_logging",
]
