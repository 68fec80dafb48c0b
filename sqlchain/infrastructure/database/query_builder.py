"""
Fluent SQL Query Builder - Chainable clause accumulation and execution.

A builder accumulates clause state through chainable methods and renders it
into one SQL statement when a terminal operation runs. Values are sanitized
and rendered through the injected driver, so numbers stay unquoted and text
is quoted and escaped.

Usage Examples:
    # SELECT query
    rows = (QueryBuilder(driver, "recent_posts")
        .select("ID")
        .select("post_title")
        .from_table("posts")
        .where({"post_status": "publish", "post_type": ["post", "page"]})
        .order_by("post_date", "DESC")
        .limit(10)
        .get())

    # INSERT query
    new_id = (QueryBuilder(driver)
        .from_table("posts")
        .values({"post_title": "Hello", "menu_order": 3})
        .insert())

    # UPDATE query
    (QueryBuilder(driver)
        .from_table("posts")
        .set({"post_status": "draft"})
        .where({"ID": 12})
        .update())

Hooks:
    Before rendering, a copy of the clause state goes through the
    ``query_builder_<op>_builder`` and ``query_builder_<op>_builder_<id>``
    filters; after rendering, the SQL text goes through
    ``query_builder_<op>_query`` and ``query_builder_<op>_query_<id>``.
"""

# Standard library imports
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from typing import Any

# Local imports
from sqlchain.application.config import BuilderConfig, get_config
from sqlchain.application.interfaces.driver import IDatabaseDriver, Row
from sqlchain.domain.entities.builder_state import BuilderState
from sqlchain.domain.exceptions import InvalidArgumentError
from sqlchain.domain.value_objects.condition import Join, JoinType
from sqlchain.infrastructure.database.condition_compiler import (
    RAW_KEY,
    Arguments,
    ConditionCompiler,
    iter_arguments,
)
from sqlchain.infrastructure.database.renderer import Operation, StatementRenderer
from sqlchain.infrastructure.hooks import HookRegistry

logger = logging.getLogger(__name__)


class QueryBuilder:
    """
    Chainable SQL statement builder.

    One instance builds one logical statement. Clause methods append to (or
    overwrite) the owned ``BuilderState`` and return the builder; a call that
    raises leaves the state untouched. Instances are not thread-safe.

    Attributes:
        id: Identifier used to namespace hook names
        hooks: Hook registry consulted by terminal operations
        options: Render options; ``wildcard`` is the LIKE wildcard token
    """

    def __init__(
        self,
        driver: IDatabaseDriver,
        id: str | None = None,
        hooks: HookRegistry | None = None,
        config: BuilderConfig | None = None,
    ) -> None:
        """
        Initialize a new query builder.

        Args:
            driver: Driver that quotes values and executes statements
            id: Builder identifier; a unique token is generated when empty
            hooks: Hook registry; a private empty registry when omitted
            config: Builder defaults; loaded from the environment when omitted
        """
        config = config or get_config().builder

        self.id = id if id else uuid.uuid4().hex
        self.hooks = hooks if hooks is not None else HookRegistry()
        self.options = {
            "wildcard": config.default_wildcard,
            "default_wildcard": config.default_wildcard,
        }
        self._driver = driver
        self._state = BuilderState()
        self._compiler = ConditionCompiler(driver, self.options, config.auto_sanitize)
        self._renderer = StatementRenderer(driver.quote_identifier, driver.unsupported_statements)

    @classmethod
    def create(
        cls,
        driver: IDatabaseDriver,
        id: str | None = None,
        hooks: HookRegistry | None = None,
        config: BuilderConfig | None = None,
    ) -> "QueryBuilder":
        """Static constructor."""
        return cls(driver, id, hooks, config)

    @property
    def driver(self) -> IDatabaseDriver:
        return self._driver

    @property
    def state(self) -> BuilderState:
        """Copy of the accumulated clause state."""
        return self._state.copy()

    def _qualify(self, name: str, qualify: bool) -> str:
        return f"{self._driver.table_prefix or ''}{name}" if qualify else name

    # ------------------------------------------------------------------
    # Clause accumulation
    # ------------------------------------------------------------------

    def select(self, statement: str | Iterable[str]) -> "QueryBuilder":
        """
        Add projected expressions.

        Args:
            statement: Raw expression (aliases allowed) or several of them

        Returns:
            Self for method chaining
        """
        if isinstance(statement, str):
            self._state.select.append(statement)
        else:
            self._state.select.extend(str(expression) for expression in statement)
        return self

    def from_table(self, name: str, qualify: bool = True) -> "QueryBuilder":
        """
        Set the FROM target.

        Args:
            name: Table expression, optionally with an alias
            qualify: Prepend the driver's table prefix

        Returns:
            Self for method chaining
        """
        self._state.from_table = self._qualify(name, qualify)
        return self

    def keywords(
        self, keywords: str | None, columns: Iterable[str], separator: str = " "
    ) -> "QueryBuilder":
        """
        Add a keyword search over several columns.

        Every keyword adds an AND-joined condition matching it in any column.

        Returns:
            Self for method chaining
        """
        self._state.where.extend(self._compiler.compile_keywords(keywords, columns, separator))
        return self

    def where(self, args: Arguments) -> "QueryBuilder":
        """
        Add WHERE conditions.

        Args:
            args: Mapping (or sequence of pairs) from column, or ``raw``, to a
                value or a configuration mapping

        Returns:
            Self for method chaining

        Raises:
            MissingBoundError: If a BETWEEN entry lacks its upper bound
            InvalidArgumentError: If a joint or sanitizer is invalid

        Example:
            .where({"status": "active", "age": {"operator": "BETWEEN", "min": 18, "max": 30}})
        """
        self._state.where.extend(self._compiler.compile_where(args))
        return self

    def join(
        self,
        table: str,
        args: Iterable[Mapping[str, Any]],
        join_type: JoinType | str | bool = False,
        qualify: bool = True,
    ) -> "QueryBuilder":
        """
        Add a JOIN.

        Args:
            table: Joined table, optionally with an alias
            args: ON arguments
            join_type: Join type token; True means LEFT, False a plain JOIN
            qualify: Prepend the driver's table prefix

        Returns:
            Self for method chaining

        Raises:
            InvalidArgumentError: If the join type is not allowed
        """
        parsed_type = JoinType.parse(join_type)
        conditions = self._compiler.compile_join(args)
        self._state.join.append(Join(self._qualify(table, qualify), parsed_type, tuple(conditions)))
        return self

    def limit(self, limit: int | None) -> "QueryBuilder":
        """Set LIMIT; None removes it."""
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            raise InvalidArgumentError("LIMIT must be a non-negative integer", argument=limit)
        self._state.limit = limit
        return self

    def offset(self, offset: int | None) -> "QueryBuilder":
        """Set OFFSET; zero or None removes it."""
        if offset is not None and (isinstance(offset, bool) or not isinstance(offset, int) or offset < 0):
            raise InvalidArgumentError("OFFSET must be a non-negative integer", argument=offset)
        self._state.offset = offset or 0
        return self

    def order_by(self, key: str, direction: str = "ASC") -> "QueryBuilder":
        """
        Add an ORDER BY entry.

        Args:
            key: Column or expression; empty keys are ignored
            direction: ASC or DESC, case-insensitive

        Returns:
            Self for method chaining

        Raises:
            InvalidArgumentError: If direction is neither ASC nor DESC
        """
        normalized = str(direction).strip().upper() if direction is not None else ""
        if normalized not in ("ASC", "DESC"):
            raise InvalidArgumentError(
                "Invalid direction value.", InvalidArgumentError.DIRECTION, direction
            )
        if key:
            self._state.order.append(f"{key} {normalized}")
        return self

    def group_by(self, statement: str) -> "QueryBuilder":
        if statement:
            self._state.group.append(statement)
        return self

    def having(self, statement: str) -> "QueryBuilder":
        if statement:
            self._state.having = statement
        return self

    def set(self, args: Arguments) -> "QueryBuilder":
        """
        Add UPDATE assignments.

        A ``raw`` key appends its value verbatim.

        Returns:
            Self for method chaining
        """
        fragments = []
        for key, value in iter_arguments(args):
            if key == RAW_KEY:
                fragments.append(self._compiler.build_statement([value]))
                continue
            rendered = self._compiler.compile_assignment_value(key, value)
            fragments.append(
                self._compiler.build_statement([self._driver.quote_identifier(key), "=", rendered])
            )
        self._state.set.extend(fragments)
        return self

    def values(self, args: Arguments) -> "QueryBuilder":
        """
        Add INSERT column values, replacing earlier values of the same column.

        Returns:
            Self for method chaining
        """
        compiled = {}
        for key, value in iter_arguments(args):
            compiled[self._driver.quote_identifier(key)] = self._compiler.compile_assignment_value(key, value)
        self._state.values.update(compiled)
        return self

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _hook_names(self, operation: Operation, stage: str) -> tuple[str, str]:
        name = f"query_builder_{operation.value}_{stage}"
        return name, f"{name}_{self.id}"

    def _apply_builder_hooks(self, operation: Operation) -> None:
        for name in self._hook_names(operation, "builder"):
            if not self.hooks.has(name):
                continue
            state = self.hooks.apply(name, self._state.copy())
            if not isinstance(state, BuilderState):
                raise TypeError(f"Hook {name} must return a BuilderState, got {type(state).__name__}")
            self._state = state

    def _apply_query_hooks(self, operation: Operation, sql: str) -> str:
        for name in self._hook_names(operation, "query"):
            sql = self.hooks.apply(name, sql)
        return sql

    def _compile(self, operation: Operation, sql: str | None = None, **render_options: Any) -> str:
        """Run builder hooks, render (unless SQL is given), then run query hooks."""
        if operation is not Operation.FOUND_ROWS:
            self._apply_builder_hooks(operation)
        if not sql:
            sql = self._renderer.render(operation, self._state, **render_options)
        sql = self._apply_query_hooks(operation, sql)

        logger.debug(
            f"[{self.id}] {operation.value}: {sql}",
            extra={"builder_id": self.id, "operation": operation.value},
        )
        return sql

    def to_sql(self, operation: Operation | str = Operation.GET, **render_options: Any) -> str:
        """
        Render the current state without running hooks or executing.

        Args:
            operation: Terminal operation whose statement to render
            **render_options: ``calc_rows``, ``column`` or ``bypass_limit``

        Returns:
            SQL text
        """
        return self._renderer.render(Operation(operation), self._state, **render_options)

    # ------------------------------------------------------------------
    # Terminal operations
    # ------------------------------------------------------------------

    def get(self, mapper: Callable[[Row], Any] | None = None, calc_rows: bool = False) -> list[Any]:
        """
        Execute the SELECT and return every row.

        Args:
            mapper: Optional callable applied to each row
            calc_rows: Ask the server to count rows ignoring LIMIT

        Returns:
            Rows, or mapped rows

        Raises:
            UnsupportedStatementError: If ``calc_rows`` is set and the
                driver has no SQL_CALC_FOUND_ROWS
        """
        sql = self._compile(Operation.GET, calc_rows=calc_rows)
        rows = self._driver.fetch_all(sql)
        if mapper:
            return [mapper(row) for row in rows]
        return rows

    def first(self) -> Row | None:
        """Execute the SELECT with ``LIMIT 1`` and return the row, if any."""
        sql = self._compile(Operation.FIRST)
        return self._driver.fetch_one(sql)

    def value(self, column: int = 0, row: int = 0) -> Any:
        """Execute the SELECT and return one scalar."""
        sql = self._compile(Operation.VALUE)
        return self._driver.fetch_scalar(sql, column, row)

    def count(self, column: str = "1", bypass_limit: bool = True) -> int:
        """
        Execute a count of the matching rows.

        Args:
            column: Counted expression
            bypass_limit: Ignore LIMIT/OFFSET

        Returns:
            Row count
        """
        sql = self._compile(Operation.COUNT, column=str(column), bypass_limit=bypass_limit)
        return int(self._driver.fetch_scalar(sql) or 0)

    def col(self, column: int = 0, calc_rows: bool = False) -> list[Any]:
        """Execute the SELECT and return one column of every row."""
        sql = self._compile(Operation.COL, calc_rows=calc_rows)
        return self._driver.fetch_column(sql, column)

    def query(self, sql: str = "") -> Any:
        """
        Execute caller SQL, or the built SELECT when none is given.

        Returns:
            Driver success indicator
        """
        sql = self._compile(Operation.QUERY, sql or None)
        return self._driver.execute(sql)

    def raw(self, sql: str) -> Any:
        return self.query(sql)

    def delete(self) -> Any:
        """Execute the DELETE and return the driver success indicator."""
        sql = self._compile(Operation.DELETE)
        if not self._state.where:
            logger.warning(f"DELETE on {self._state.from_table} without WHERE clause - this will delete ALL rows!")
        return self._driver.execute(sql)

    def insert(self) -> Any:
        """
        Execute the INSERT.

        Returns:
            Identifier generated by the insert, or None if it failed
        """
        sql = self._compile(Operation.INSERT)
        result = self._driver.execute(sql)
        if result is False:
            return None
        return self._driver.last_insert_id

    def update(self) -> Any:
        """Execute the UPDATE and return the driver success indicator."""
        sql = self._compile(Operation.UPDATE)
        if not self._state.where:
            logger.warning(f"UPDATE on {self._state.from_table} without WHERE clause - this will update ALL rows!")
        return self._driver.execute(sql)

    def rows_found(self) -> Any:
        """Return the row count computed by the last ``calc_rows`` query (MySQL only)."""
        sql = self._compile(Operation.FOUND_ROWS)
        return self._driver.fetch_scalar(sql)

    def __repr__(self) -> str:
        return f"QueryBuilder(id={self.id!r}, from={self._state.from_table!r})"


def create_builder(
    driver: IDatabaseDriver, id: str | None = None, hooks: HookRegistry | None = None
) -> QueryBuilder:
    """Return an initialized builder."""
    return QueryBuilder.create(driver, id, hooks)
