"""
Domain-level exceptions for the query builder.

This module defines the errors raised while accumulating clause state or
compiling conditions. They are raised synchronously at the call that
introduced the bad argument, before any builder state is mutated.
"""

from typing import Any


class QueryBuilderError(Exception):
    """Base exception for all builder and model errors."""

    def __init__(
        self, message: str, code: int | None = None, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class InvalidArgumentError(QueryBuilderError, ValueError):
    """Raised when a clause method receives an argument it cannot accept."""

    DIRECTION = 10200
    JOIN_TYPE = 10201
    JOINT = 10204
    SANITIZER = 10205
    MODEL_ARGS = 10100
    EMPTY_LIST = 10207

    def __init__(self, message: str, code: int | None = None, argument: Any = None) -> None:
        super().__init__(message, code, details={"argument": argument})
        self.argument = argument


class MissingBoundError(QueryBuilderError):
    """
    Raised when a BETWEEN comparison is requested without its upper bound.

    The accepted keys differ between WHERE (``max``/``key_b``) and JOIN
    (``max``/``key_c``) arguments, so they are carried for the message.
    """

    WHERE = 10202
    JOIN = 10203

    def __init__(self, key: str, accepted: tuple[str, ...], code: int) -> None:
        names = " or ".join(f'"{name}"' for name in accepted)
        super().__init__(
            f"{names} parameter must be indicated when using the BETWEEN operator on '{key}'.",
            code,
            details={"key": key, "accepted": list(accepted)},
        )
        self.key = key
        self.accepted = accepted


class MissingTableError(QueryBuilderError):
    """Raised when a statement is rendered before a FROM target was set."""

    CODE = 10206

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Cannot render '{operation}' statement: no FROM table was set",
            self.CODE,
            details={"operation": operation},
        )
        self.operation = operation


class UnsupportedStatementError(QueryBuilderError):
    """Raised when a statement needs a SQL form the target driver does not accept."""

    CODE = 10208

    def __init__(self, operation: str, form: str) -> None:
        super().__init__(
            f"Cannot render '{operation}' statement: the driver does not support {form}",
            self.CODE,
            details={"operation": operation, "form": form},
        )
        self.operation = operation
        self.form = form
