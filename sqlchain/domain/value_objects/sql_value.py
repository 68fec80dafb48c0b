"""Tagged SQL value used by the condition compiler and statement renderer."""

# Standard library imports
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

# Permissive "is numeric": optional sign, digits with optional fraction or a
# leading-dot fraction, optional exponent, surrounding whitespace allowed.
_NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_NULL_LITERAL_PATTERN = re.compile(r"^(not\s+)?null$", re.IGNORECASE)

SEQUENCE_TYPES = (list, tuple, set, frozenset)


class ValueKind(Enum):
    """Kinds a value can take once it reaches the SQL boundary."""

    NULL = "null"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    RAW = "raw"
    SEQUENCE = "sequence"


def is_null_literal(value: Any) -> bool:
    """Check whether a string spells the SQL ``NULL``/``NOT NULL`` literal."""
    return isinstance(value, str) and bool(_NULL_LITERAL_PATTERN.match(value.strip()))


def looks_numeric(value: str) -> bool:
    """Check whether a string has the shape of a number, whatever its magnitude."""
    return bool(_NUMERIC_PATTERN.match(value))


def parse_number(value: str) -> int | float | None:
    """
    Parse a numeric-looking string.

    Returns:
        A float for decimal or exponent notation, an int otherwise, or None
        when the string is not numeric or does not hold a finite float
        (``"1e999"``, or more digits than a float can represent)
    """
    if not looks_numeric(value):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    if is_decimal_string(value):
        return number
    return int(value.strip())


def is_numeric(value: Any) -> bool:
    """
    Check whether a value is numeric or a numeric-looking string.

    Booleans are not numeric. Strings spelling ``NULL`` never are, nor
    are strings whose number is out of float range.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, Decimal)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, str):
        return parse_number(value) is not None
    return False


def is_decimal_string(value: str) -> bool:
    """Check whether a numeric string carries a fraction or an exponent."""
    stripped = value.strip().lower()
    return "." in stripped or "e" in stripped


@dataclass(frozen=True)
class SqlValue:
    """
    Immutable tagged value.

    Construct explicitly through the classmethods or let :meth:`infer` tag a
    plain Python value once at the API boundary. The renderer branches on
    ``kind`` only.

    Attributes:
        kind: Value kind
        payload: Python payload (``None`` for NULL, a tuple of ``SqlValue``
            for SEQUENCE, the SQL text for RAW)
    """

    kind: ValueKind
    payload: Any = None

    @classmethod
    def null(cls) -> "SqlValue":
        return cls(ValueKind.NULL)

    @classmethod
    def integer(cls, value: int) -> "SqlValue":
        return cls(ValueKind.INTEGER, int(value))

    @classmethod
    def floating(cls, value: float | Decimal) -> "SqlValue":
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def text(cls, value: str) -> "SqlValue":
        return cls(ValueKind.TEXT, str(value))

    @classmethod
    def raw(cls, sql: str) -> "SqlValue":
        """Already-safe SQL fragment, rendered verbatim."""
        return cls(ValueKind.RAW, str(sql))

    @classmethod
    def sequence(cls, items: Iterable[Any], force_string: bool = False) -> "SqlValue":
        return cls(
            ValueKind.SEQUENCE,
            tuple(cls.infer(item, force_string=force_string) for item in items),
        )

    @classmethod
    def infer(cls, value: Any, force_string: bool = False) -> "SqlValue":
        """
        Tag a plain Python value.

        Args:
            value: Value to tag; ``SqlValue`` instances are returned unchanged
            force_string: Tag every non-null scalar as TEXT regardless of
                numeric appearance

        Returns:
            Tagged value
        """
        if isinstance(value, SqlValue):
            return value
        if value is None:
            return cls.null()
        if isinstance(value, SEQUENCE_TYPES):
            return cls.sequence(value, force_string=force_string)
        if force_string:
            return cls.text(value)
        if isinstance(value, bool):
            return cls.integer(1 if value else 0)
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, (float, Decimal)):
            if isinstance(value, float) and not math.isfinite(value):
                return cls.text(str(value))
            return cls.floating(value)
        if isinstance(value, str):
            number = parse_number(value)
            if isinstance(number, float):
                return cls.floating(number)
            if number is not None:
                return cls.integer(number)
        return cls.text(str(value))

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    @property
    def is_sequence(self) -> bool:
        return self.kind is ValueKind.SEQUENCE

    def __repr__(self) -> str:
        return f"SqlValue({self.kind.name}, {self.payload!r})"


def raw(sql: str) -> SqlValue:
    """Shorthand for :meth:`SqlValue.raw`."""
    return SqlValue.raw(sql)
