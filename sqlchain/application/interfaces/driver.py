"""
Driver Interface Definitions

Defines the executor contract the query builder and data models consume.
The builder only renders SQL text; everything that touches a live
database goes through an object satisfying this protocol.
"""

# Standard library imports
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any, Protocol

Row = dict[str, Any]


class IDatabaseDriver(Protocol):
    """
    Database driver interface.

    Attributes:
        table_prefix: Namespace prepended to qualified table names
        last_insert_id: Identifier generated by the most recent insert
        unsupported_statements: MySQL-specific statement forms (values of
            the renderer's ``StatementForm``) the database rejects
    """

    table_prefix: str
    last_insert_id: Any
    unsupported_statements: frozenset[str]

    @abstractmethod
    def prepare(self, placeholder: str, value: Any) -> str:
        """
        Render a value as a SQL literal.

        Args:
            placeholder: ``%d`` (integer), ``%f`` (float) or ``%s`` (quoted text)
            value: Value to render

        Returns:
            Safely quoted SQL literal
        """
        ...

    @abstractmethod
    def escape_like(self, text: str) -> str:
        """Escape LIKE wildcards in text."""
        ...

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote a column name for SET/INSERT lists."""
        ...

    @abstractmethod
    def fetch_all(self, sql: str) -> list[Row]:
        """Execute a query and return every row."""
        ...

    @abstractmethod
    def fetch_one(self, sql: str) -> Row | None:
        """Execute a query and return the first row, or None."""
        ...

    @abstractmethod
    def fetch_scalar(self, sql: str, column: int = 0, row: int = 0) -> Any:
        """Execute a query and return the value at (column, row)."""
        ...

    @abstractmethod
    def fetch_column(self, sql: str, column: int = 0) -> list[Any]:
        """Execute a query and return one column of every row."""
        ...

    @abstractmethod
    def execute(self, sql: str) -> Any:
        """
        Execute a statement.

        Returns:
            Driver-defined success indicator; ``False`` signals failure
        """
        ...

    @abstractmethod
    def insert(self, table: str, data: Mapping[str, Any]) -> Any:
        """Insert one row into an already-qualified table."""
        ...

    @abstractmethod
    def update(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]) -> Any:
        """Update rows of an already-qualified table."""
        ...

    @abstractmethod
    def delete(self, table: str, where: Mapping[str, Any]) -> Any:
        """Delete rows from an already-qualified table."""
        ...
