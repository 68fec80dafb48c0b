"""
Input Sanitization - Value cleaning applied before values enter a clause.

This module maps a sanitize selector and a raw value to a sanitized value.
The selector is ``True`` (auto-detect), ``False``/``None`` (skip), the
name of a registered sanitizer, or any callable. Quoting and escaping are
the driver's job; sanitization only normalizes the value itself.
"""

# Standard library imports
import logging
import math
import re
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any, ClassVar, Union

# Local imports
from sqlchain.domain.exceptions import InvalidArgumentError
from sqlchain.domain.value_objects.sql_value import (
    SEQUENCE_TYPES,
    SqlValue,
    is_numeric,
    looks_numeric,
    parse_number,
)

logger = logging.getLogger(__name__)

SanitizeCallback = Union[bool, str, Callable[[Any], Any], None]


class SanitizationError(Exception):
    """Raised when input cannot be safely sanitized."""

    pass


class InputSanitizer:
    """
    Value sanitization for clause values.

    Named sanitizers are looked up in a class-level registry; callers can
    add their own with :meth:`register`.
    """

    _SCRIPT_STYLE = re.compile(r"<(script|style)[^>]*?>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
    _TAG = re.compile(r"<[a-zA-Z/!?][^>]*>?")
    _OCTET = re.compile(r"%[a-fA-F0-9]{2}")
    _WHITESPACE = re.compile(r"[\r\n\t ]+")
    _INT_PREFIX = re.compile(r"^\s*[+-]?\d+")
    _FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
    _IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

    _registry: ClassVar[dict[str, Callable[[Any], Any]]] = {}

    @classmethod
    def sanitize_text_field(cls, value: Any) -> str:
        """
        Clean a plain-text value.

        Strips script/style blocks and tags, encodes stray ``<``, collapses
        whitespace runs (including newlines and tabs) into one space,
        removes percent-encoded octets and trims.

        Args:
            value: Value to clean (converted to string)

        Returns:
            Cleaned text
        """
        if value is None or isinstance(value, (dict, *SEQUENCE_TYPES)):
            return ""
        text = value if isinstance(value, str) else str(value)

        if "<" in text:
            text = cls._SCRIPT_STYLE.sub("", text)
            text = cls._TAG.sub("", text)
            text = text.replace("<", "&lt;")

        text = cls._WHITESPACE.sub(" ", text).strip()

        found = False
        while cls._OCTET.search(text):
            text = cls._OCTET.sub("", text)
            found = True
        if found:
            text = re.sub(r" +", " ", text).strip()

        return text

    @classmethod
    def intval(cls, value: Any) -> int:
        """
        Integer value of a scalar, reading the leading digits of text.

        Values with no finite integer reading (infinities, NaN, numeric
        text beyond float range) give 0.
        """
        if value is None:
            return 0
        if isinstance(value, (bool, int)):
            return int(value)
        if isinstance(value, (float, Decimal)):
            try:
                return int(value)
            except (ValueError, OverflowError):
                return 0
        text = str(value)
        if looks_numeric(text):
            number = parse_number(text)
            return int(number) if number is not None else 0
        match = cls._INT_PREFIX.match(text)
        if not match:
            return 0
        try:
            return int(match.group(0))
        except ValueError:
            return 0

    @classmethod
    def floatval(cls, value: Any) -> float:
        """Float value of a scalar, reading the leading number of text; 0.0 when not finite."""
        if value is None:
            return 0.0
        try:
            if isinstance(value, (bool, int, float, Decimal)):
                number = float(value)
            else:
                match = cls._FLOAT_PREFIX.match(str(value))
                number = float(match.group(0)) if match else 0.0
        except (ValueError, OverflowError):
            return 0.0
        return number if math.isfinite(number) else 0.0

    @classmethod
    def absint(cls, value: Any) -> int:
        return abs(cls.intval(value))

    @classmethod
    def strval(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @classmethod
    def register(cls, name: str, func: Callable[[Any], Any]) -> None:
        """
        Register a named sanitizer.

        Args:
            name: Selector name usable as ``sanitize_callback``
            func: Callable receiving the raw value
        """
        cls._registry[name] = func

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._registry.pop(name, None)

    @classmethod
    def auto_callback(cls, value: Any) -> Callable[[Any], Any] | None:
        """
        Pick a sanitizer from the shape of the value.

        Decimal-looking numeric strings become floats, other numeric strings
        integers, other strings are text-cleaned; everything else passes.
        """
        if isinstance(value, str):
            if is_numeric(value):
                return cls.floatval if "." in value else cls.intval
            return cls.sanitize_text_field
        return None

    @classmethod
    def resolve(
        cls,
        callback: SanitizeCallback,
        value: Any,
        extra: Mapping[str, Callable[[Any], Any]] | None = None,
    ) -> Callable[[Any], Any] | None:
        """
        Resolve a sanitize selector to a callable.

        Args:
            callback: Selector
            value: Value about to be sanitized (used by auto-detection)
            extra: Additional named sanitizers, checked before the registry

        Returns:
            Callable, or None when the value passes through

        Raises:
            InvalidArgumentError: If a named sanitizer does not exist
        """
        if callback is True:
            return cls.auto_callback(value)
        if callback is False or callback is None:
            return None
        if callable(callback):
            return callback
        if extra and callback in extra:
            return extra[callback]
        if callback in cls._registry:
            return cls._registry[callback]
        raise InvalidArgumentError(
            f"Unknown sanitize callback: {callback!r}", InvalidArgumentError.SANITIZER, callback
        )

    @classmethod
    def sanitize_value(
        cls,
        callback: SanitizeCallback,
        value: Any,
        extra: Mapping[str, Callable[[Any], Any]] | None = None,
    ) -> Any:
        """
        Sanitize a value with the given selector.

        Sequences are sanitized element by element with the same selector.
        Tagged ``SqlValue`` instances were typed by the caller and pass
        through unchanged.

        Args:
            callback: Selector (see module docstring)
            value: Raw value
            extra: Additional named sanitizers

        Returns:
            Sanitized value
        """
        if isinstance(value, SqlValue):
            return value
        if isinstance(value, SEQUENCE_TYPES):
            return [cls.sanitize_value(callback, item, extra) for item in value]

        func = cls.resolve(callback, value, extra)
        return func(value) if func else value

    @classmethod
    def sanitize_sql_value(cls, value: Any) -> str:
        """
        Quote a value as a SQL string literal.

        Note: Connection-aware drivers override this with their own quoting.

        Args:
            value: Value to quote

        Returns:
            Quoted literal, or ``NULL``
        """
        if value is None:
            return "NULL"

        str_value = str(value)
        str_value = str_value.replace("\\", "\\\\")
        str_value = str_value.replace("'", "''")
        str_value = str_value.replace("\x00", "\\0")

        return f"'{str_value}'"

    @classmethod
    def sanitize_sql_identifier(cls, identifier: str) -> str:
        """
        Validate a plain SQL identifier (table/column name).

        Raises:
            SanitizationError: If identifier is unsafe
        """
        if not identifier or not cls._IDENTIFIER.match(identifier):
            logger.warning(f"Rejected SQL identifier: {identifier[:50] if identifier else ''!r}")
            raise SanitizationError(f"Invalid SQL identifier: {identifier}")

        return identifier


for _name in ("intval", "floatval", "absint", "strval", "sanitize_text_field"):
    InputSanitizer.register(_name, getattr(InputSanitizer, _name))
