"""
Reference Drivers

``BaseDriver`` renders literals and identifiers without a live connection
and implements the convenience writers on top of ``QueryBuilder``.
``RecordingDriver`` keeps every statement in memory and serves queued
results, for dry runs and tests.
"""

# Standard library imports
import itertools
import logging
import math
import re
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

# Local imports
from sqlchain.application.config import BuilderConfig
from sqlchain.application.interfaces.driver import Row
from sqlchain.infrastructure.database.query_builder import QueryBuilder
from sqlchain.infrastructure.security.input_sanitizer import InputSanitizer

logger = logging.getLogger(__name__)

_LIKE_SPECIALS = re.compile(r"([\\%_])")

# Writers use fixed builder defaults, never the environment.
_WRITER_CONFIG = BuilderConfig()


class BaseDriver(ABC):
    """
    Driver base class with connection-free quoting.

    Subclasses implement the fetch/execute methods.

    Attributes:
        table_prefix: Namespace prepended to qualified table names
        last_insert_id: Identifier generated by the most recent insert
        unsupported_statements: Statement forms the renderer must refuse;
            empty, as MySQL accepts every form it renders
    """

    identifier_quote = "`"
    unsupported_statements: frozenset[str] = frozenset()

    def __init__(self, table_prefix: str = "") -> None:
        self.table_prefix = table_prefix
        self.last_insert_id: Any = None

    def prepare(self, placeholder: str, value: Any) -> str:
        """
        Render a value as a SQL literal.

        Args:
            placeholder: ``%d``, ``%f`` or ``%s``
            value: Value to render

        Returns:
            SQL literal

        Raises:
            ValueError: If the placeholder is not supported
        """
        if placeholder == "%d":
            return str(InputSanitizer.intval(value))
        if placeholder == "%f":
            return self._format_float(value)
        if placeholder == "%s":
            return self.quote_string("" if value is None else str(value))
        raise ValueError(f"Unsupported placeholder: {placeholder}")

    @staticmethod
    def _format_float(value: Any) -> str:
        if isinstance(value, Decimal):
            return str(value) if value.is_finite() else "0"
        number = value if isinstance(value, float) else InputSanitizer.floatval(value)
        return repr(float(number)) if math.isfinite(number) else "0"

    def quote_string(self, text: str) -> str:
        """Quote text as a string literal."""
        return InputSanitizer.sanitize_sql_value(text)

    def escape_like(self, text: str) -> str:
        """Backslash-escape ``\\``, ``%`` and ``_``."""
        return _LIKE_SPECIALS.sub(r"\\\1", text)

    def quote_identifier(self, name: str) -> str:
        quote = self.identifier_quote
        return quote + str(name).replace(quote, quote * 2) + quote

    def _builder(self, id: str) -> QueryBuilder:
        return QueryBuilder(self, id, config=_WRITER_CONFIG)

    def insert(self, table: str, data: Mapping[str, Any]) -> Any:
        """
        Insert one row.

        Args:
            table: Already-qualified table name
            data: Column to value mapping

        Returns:
            Result of :meth:`execute`; ``last_insert_id`` is updated
        """
        sql = self._builder("driver_insert").from_table(table, qualify=False).values(data).to_sql("insert")
        return self.execute(sql)

    def update(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]) -> Any:
        sql = (
            self._builder("driver_update")
            .from_table(table, qualify=False)
            .set(data)
            .where(where)
            .to_sql("update")
        )
        return self.execute(sql)

    def delete(self, table: str, where: Mapping[str, Any]) -> Any:
        sql = self._builder("driver_delete").from_table(table, qualify=False).where(where).to_sql("delete")
        return self.execute(sql)

    @abstractmethod
    def fetch_all(self, sql: str) -> list[Row]:
        pass

    @abstractmethod
    def fetch_one(self, sql: str) -> Row | None:
        pass

    @abstractmethod
    def fetch_scalar(self, sql: str, column: int = 0, row: int = 0) -> Any:
        pass

    @abstractmethod
    def fetch_column(self, sql: str, column: int = 0) -> list[Any]:
        pass

    @abstractmethod
    def execute(self, sql: str) -> Any:
        pass


class RecordingDriver(BaseDriver):
    """
    In-memory driver.

    Every statement is appended to ``queries`` as ``(method, sql)``. Results
    are served from per-method queues filled with :meth:`queue`; an empty
    queue yields an empty result (``execute`` returns 1).

    Successful INSERT statements receive sequential ``last_insert_id``
    values unless an id was queued with :meth:`queue_insert_id`.
    """

    def __init__(self, table_prefix: str = "") -> None:
        super().__init__(table_prefix)
        self.queries: list[tuple[str, str]] = []
        self._results: dict[str, deque[Any]] = defaultdict(deque)
        self._insert_ids: deque[Any] = deque()
        self._id_sequence = itertools.count(1)

    def queue(self, method: str, *results: Any) -> "RecordingDriver":
        """
        Queue results for a fetch/execute method.

        Args:
            method: ``fetch_all``, ``fetch_one``, ``fetch_scalar``,
                ``fetch_column`` or ``execute``
            *results: Results returned by successive calls
        """
        self._results[method].extend(results)
        return self

    def queue_insert_id(self, *ids: Any) -> "RecordingDriver":
        self._insert_ids.extend(ids)
        return self

    @property
    def statements(self) -> list[str]:
        return [sql for _, sql in self.queries]

    @property
    def last_query(self) -> str | None:
        return self.queries[-1][1] if self.queries else None

    def reset(self) -> None:
        self.queries.clear()
        self._results.clear()
        self._insert_ids.clear()

    def _next(self, method: str, sql: str, default: Any) -> Any:
        self.queries.append((method, sql))
        logger.debug(f"Recorded {method}: {sql[:100]}...")
        results = self._results.get(method)
        return results.popleft() if results else default

    def fetch_all(self, sql: str) -> list[Row]:
        return self._next("fetch_all", sql, [])

    def fetch_one(self, sql: str) -> Row | None:
        return self._next("fetch_one", sql, None)

    def fetch_scalar(self, sql: str, column: int = 0, row: int = 0) -> Any:
        return self._next("fetch_scalar", sql, None)

    def fetch_column(self, sql: str, column: int = 0) -> list[Any]:
        return self._next("fetch_column", sql, [])

    def execute(self, sql: str) -> Any:
        result = self._next("execute", sql, 1)
        if result is not False and sql.lstrip().upper().startswith("INSERT"):
            self.last_insert_id = self._insert_ids.popleft() if self._insert_ids else next(self._id_sequence)
        return result
