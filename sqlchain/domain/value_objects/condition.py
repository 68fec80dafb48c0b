"""Compiled clause records: joints, join types, conditions and joins."""

# Standard library imports
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Local imports
from sqlchain.domain.exceptions import InvalidArgumentError


class Joint(str, Enum):
    """Boolean connective placed before a condition."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, value: Union["Joint", str, None]) -> "Joint":
        """
        Normalize a joint token.

        Args:
            value: Joint, case-insensitive string, or None for AND

        Returns:
            Joint member

        Raises:
            InvalidArgumentError: If the token is neither AND nor OR
        """
        if value is None:
            return cls.AND
        if isinstance(value, Joint):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidArgumentError(
                f"Invalid joint value: {value!r}", InvalidArgumentError.JOINT, value
            ) from None


class JoinType(str, Enum):
    """Allowed join type tokens. ``DEFAULT`` renders a plain ``JOIN``."""

    DEFAULT = ""
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    INNER = "INNER"
    CROSS = "CROSS"
    LEFT_OUTER = "LEFT OUTER"
    RIGHT_OUTER = "RIGHT OUTER"

    @classmethod
    def parse(cls, value: Union["JoinType", str, bool, None]) -> "JoinType":
        """
        Normalize a join type.

        Strings are trimmed and uppercased; booleans map True to LEFT and
        False to a plain join.

        Raises:
            InvalidArgumentError: If the token is not an allowed join type
        """
        if isinstance(value, JoinType):
            return value
        if isinstance(value, str):
            token = " ".join(value.strip().upper().split())
        else:
            token = "LEFT" if value else ""
        try:
            return cls(token)
        except ValueError:
            raise InvalidArgumentError(
                "Invalid join type.", InvalidArgumentError.JOIN_TYPE, value
            ) from None

    @property
    def keyword(self) -> str:
        return f"{self.value} JOIN" if self.value else "JOIN"


@dataclass(frozen=True)
class Condition:
    """
    A compiled, joint-tagged fragment of boolean SQL text.

    Attributes:
        joint: Connective used when the condition follows another one
        text: Condition SQL
    """

    joint: Joint
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Join:
    """
    A join record.

    Attributes:
        table: Joined table expression (may include an alias)
        type: Join type
        on: ON conditions in insertion order
    """

    table: str
    type: JoinType = JoinType.DEFAULT
    on: tuple[Condition, ...] = field(default_factory=tuple)


def chain_conditions(conditions: list[Condition] | tuple[Condition, ...]) -> str:
    """Concatenate conditions, prefixing every one but the first with its joint."""
    parts: list[str] = []
    for index, condition in enumerate(conditions):
        if index:
            parts.append(condition.joint.value)
        parts.append(condition.text)
    return " ".join(parts)
