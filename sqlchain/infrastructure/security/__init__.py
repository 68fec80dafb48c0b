"""Security utilities."""

from .input_sanitizer import InputSanitizer, SanitizationError

__all__ = ["InputSanitizer", "SanitizationError"]
