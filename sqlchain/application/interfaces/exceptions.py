"""
Driver Exception Definitions

Errors surfaced by database drivers. The query builder never catches
these; they propagate from the executor to the caller untouched.
"""


class RepositoryError(Exception):
    """Base exception for driver operations."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConnectionError(RepositoryError):
    """Raised when database connection fails."""

    def __init__(self, message: str = "Database connection failed") -> None:
        super().__init__(message)


class TimeoutError(RepositoryError):
    """Raised when a statement or connection acquisition times out."""

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(f"Operation '{operation}' timed out after {timeout_seconds} seconds")
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class IntegrityError(RepositoryError):
    """Raised when database integrity constraint is violated."""

    def __init__(self, constraint: str, message: str | None = None) -> None:
        msg = f"Integrity constraint '{constraint}' violated"
        if message:
            msg += f": {message}"
        super().__init__(msg)
        self.constraint = constraint


class TransactionError(RepositoryError):
    """Raised when a transaction cannot be started, committed or rolled back."""

    pass
