"""
Statement Renderer - Assembles builder state into SQL text.

Rendering is a pure function of a ``BuilderState``: the same state always
yields the same statement, and clause order is fixed per operation.
"""

# Standard library imports
import re
from collections.abc import Callable, Iterable
from enum import Enum

# Local imports
from sqlchain.domain.entities.builder_state import BuilderState
from sqlchain.domain.exceptions import MissingTableError, UnsupportedStatementError
from sqlchain.domain.value_objects.condition import Join, chain_conditions

_TABLE_ALIAS = re.compile(r"\s+as\s.*$", re.IGNORECASE | re.DOTALL)


class Operation(str, Enum):
    """Terminal operations and the hook/render family each belongs to."""

    GET = "get"
    FIRST = "first"
    VALUE = "value"
    COUNT = "count"
    COL = "col"
    QUERY = "query"
    DELETE = "delete"
    INSERT = "insert"
    UPDATE = "update"
    FOUND_ROWS = "found_rows"


SELECT_OPERATIONS = frozenset(
    {Operation.GET, Operation.FIRST, Operation.VALUE, Operation.COL, Operation.QUERY}
)


class StatementForm(str, Enum):
    """MySQL-specific statement forms that a driver may decline."""

    CALC_FOUND_ROWS = "SQL_CALC_FOUND_ROWS"
    FOUND_ROWS = "FOUND_ROWS()"
    MULTI_TABLE_UPDATE = "multi-table UPDATE"
    MULTI_TABLE_DELETE = "multi-table DELETE"


def _backtick(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


class StatementRenderer:
    """
    Render SELECT, COUNT, INSERT, UPDATE and DELETE statements.

    Args:
        quote_identifier: Identifier quoting used for the COUNT alias
        unsupported: Statement forms the target driver does not accept;
            rendering one raises instead of producing SQL it would reject
    """

    def __init__(
        self,
        quote_identifier: Callable[[str], str] | None = None,
        unsupported: Iterable[str] = (),
    ) -> None:
        self.quote_identifier = quote_identifier or _backtick
        self.unsupported = frozenset(StatementForm(form) for form in unsupported)

    def _require(self, form: StatementForm, operation: Operation) -> None:
        if form in self.unsupported:
            raise UnsupportedStatementError(operation.value, form.value)

    def render(
        self,
        operation: Operation | str,
        state: BuilderState,
        calc_rows: bool = False,
        column: str = "1",
        bypass_limit: bool = True,
    ) -> str:
        """
        Render the statement for a terminal operation.

        Args:
            operation: Terminal operation
            state: Clause state to render
            calc_rows: Add ``SQL_CALC_FOUND_ROWS`` to SELECT statements
            column: Counted expression for COUNT
            bypass_limit: Omit LIMIT/OFFSET from COUNT

        Returns:
            SQL text

        Raises:
            MissingTableError: If no FROM target was set
            UnsupportedStatementError: If the statement needs a form the
                driver declined
            ValueError: If the operation has no statement form
        """
        operation = Operation(operation)
        if operation is Operation.FOUND_ROWS:
            self._require(StatementForm.FOUND_ROWS, operation)
            return "SELECT FOUND_ROWS()"
        if not state.from_table:
            raise MissingTableError(operation.value)

        if operation in SELECT_OPERATIONS:
            if calc_rows:
                self._require(StatementForm.CALC_FOUND_ROWS, operation)
            return self.render_select(state, calc_rows, first=operation is Operation.FIRST)
        elif operation is Operation.COUNT:
            return self.render_count(state, column, bypass_limit)
        elif operation is Operation.INSERT:
            return self.render_insert(state)
        elif operation is Operation.UPDATE:
            if state.join:
                self._require(StatementForm.MULTI_TABLE_UPDATE, operation)
            return self.render_update(state)
        elif operation is Operation.DELETE:
            if state.join:
                self._require(StatementForm.MULTI_TABLE_DELETE, operation)
            return self.render_delete(state)
        raise ValueError(f"Unsupported operation: {operation}")

    def render_select(self, state: BuilderState, calc_rows: bool = False, first: bool = False) -> str:
        """Render SELECT; ``first`` forces ``LIMIT 1`` ahead of OFFSET, a zero limit is omitted."""
        select = "SELECT SQL_CALC_FOUND_ROWS" if calc_rows else "SELECT"
        sql_parts = [select, ",".join(state.select) if state.select else "*"]
        sql_parts.append(f"FROM {state.from_table}")
        sql_parts.extend(self._join_parts(state.join))
        sql_parts.extend(self._where_parts(state))

        if state.group:
            sql_parts.append("GROUP BY " + ",".join(state.group))
        if state.having:
            sql_parts.append(f"HAVING {state.having}")
        if state.order:
            sql_parts.append("ORDER BY " + ",".join(state.order))

        if first:
            sql_parts.append("LIMIT 1")
        elif state.limit:
            sql_parts.append(f"LIMIT {int(state.limit)}")
        if state.offset:
            sql_parts.append(f"OFFSET {int(state.offset)}")

        return " ".join(sql_parts)

    def render_count(self, state: BuilderState, column: str = "1", bypass_limit: bool = True) -> str:
        """Render ``SELECT count(<column>)``; ORDER BY is never rendered."""
        sql_parts = [f"SELECT count({column}) as {self.quote_identifier('count')}"]
        sql_parts.append(f"FROM {state.from_table}")
        sql_parts.extend(self._join_parts(state.join))
        sql_parts.extend(self._where_parts(state))

        if state.group:
            sql_parts.append("GROUP BY " + ",".join(state.group))
        if state.having:
            sql_parts.append(f"HAVING {state.having}")

        if not bypass_limit:
            if state.limit:
                sql_parts.append(f"LIMIT {int(state.limit)}")
            if state.offset:
                sql_parts.append(f"OFFSET {int(state.offset)}")

        return " ".join(sql_parts)

    def render_insert(self, state: BuilderState) -> str:
        columns = ", ".join(state.values.keys())
        values = ",".join(state.values.values())
        return f"INSERT INTO {state.from_table} ({columns}) VALUES({values})"

    def render_update(self, state: BuilderState) -> str:
        """Render UPDATE; joined tables are listed after the target."""
        targets = [state.from_table] + [join.table for join in state.join]
        sql_parts = ["UPDATE " + ",".join(targets)]
        sql_parts.extend(self._join_parts(state.join))
        if state.set:
            sql_parts.append("SET " + ",".join(state.set))
        sql_parts.extend(self._where_parts(state))

        return " ".join(sql_parts)

    def render_delete(self, state: BuilderState) -> str:
        """Render DELETE; with joins the alias-free target precedes FROM."""
        if state.join:
            sql_parts = ["DELETE " + _TABLE_ALIAS.sub("", state.from_table).strip()]
        else:
            sql_parts = ["DELETE"]
        sql_parts.append(f"FROM {state.from_table}")
        sql_parts.extend(self._join_parts(state.join))
        sql_parts.extend(self._where_parts(state))

        return " ".join(sql_parts)

    @staticmethod
    def _join_parts(joins: list[Join]) -> list[str]:
        parts = []
        for join in joins:
            text = f"{join.type.keyword} {join.table}"
            if join.on:
                text += " ON " + chain_conditions(join.on)
            parts.append(text)
        return parts

    @staticmethod
    def _where_parts(state: BuilderState) -> list[str]:
        if not state.where:
            return []
        return ["WHERE " + chain_conditions(state.where)]
