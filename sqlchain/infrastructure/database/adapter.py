"""
PostgreSQL Database Driver

Executes builder-rendered statements over a psycopg 3 connection pool.
Handles connection acquisition, literal quoting, error translation and
transactions.
"""

# Standard library imports
import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

# Third-party imports
import psycopg
from psycopg import Connection, sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

# Local imports
from sqlchain.application.interfaces.driver import Row
from sqlchain.application.interfaces.exceptions import (
    IntegrityError,
    RepositoryError,
    TimeoutError,
    TransactionError,
)
from sqlchain.infrastructure.database.drivers import BaseDriver
from sqlchain.infrastructure.database.renderer import StatementForm

logger = logging.getLogger(__name__)


def _is_insert(statement: str) -> bool:
    return statement.lstrip().upper().startswith("INSERT")


class PostgreSQLDriver(BaseDriver):
    """
    PostgreSQL driver using psycopg 3.

    Rows are returned as dictionaries. Statements run in the pool
    connection's implicit transaction and are committed when the
    connection returns to the pool, unless an explicit transaction is
    active.

    PostgreSQL has no ``SQL_CALC_FOUND_ROWS``/``FOUND_ROWS()`` and no
    multi-table UPDATE or DELETE syntax, so builders bound to this driver
    raise ``UnsupportedStatementError`` for those statements.
    """

    identifier_quote = '"'
    unsupported_statements = frozenset(
        {
            StatementForm.CALC_FOUND_ROWS,
            StatementForm.FOUND_ROWS,
            StatementForm.MULTI_TABLE_UPDATE,
            StatementForm.MULTI_TABLE_DELETE,
        }
    )

    def __init__(self, pool: ConnectionPool, table_prefix: str = "", timeout: float = 30.0) -> None:
        """
        Initialize driver with connection pool.

        Args:
            pool: psycopg connection pool
            table_prefix: Namespace prepended to qualified table names
            timeout: Seconds to wait for a pool connection
        """
        super().__init__(table_prefix)
        self._pool = pool
        self._timeout = timeout
        self._connection: Connection | None = None
        self._transaction: psycopg.Transaction | None = None

    @property
    def pool(self) -> ConnectionPool:
        """Get the connection pool."""
        return self._pool

    @property
    def has_active_transaction(self) -> bool:
        """Check if there's an active transaction."""
        return self._transaction is not None

    def quote_string(self, text: str) -> str:
        """Quote text with psycopg's literal adaptation."""
        return sql.Literal(text).as_string(self._connection)

    @contextmanager
    def acquire_connection(self) -> Generator[Connection, None, None]:
        """
        Acquire a database connection from the pool.

        Yields:
            Database connection (the transaction's, when one is active)

        Raises:
            TimeoutError: If no connection became available in time
        """
        if self._connection is not None:
            yield self._connection
            return

        try:
            with self._pool.connection(timeout=self._timeout) as connection:
                yield connection
        except PoolTimeout as e:
            logger.error(f"Connection acquisition timed out: {e}")
            raise TimeoutError("acquire_connection", self._timeout) from e

    @contextmanager
    def _translate_errors(self, operation: str, statement: str) -> Iterator[None]:
        """Map psycopg failures onto driver exceptions."""
        try:
            yield
        except psycopg.IntegrityError as e:
            logger.error(f"Integrity constraint violated: {e} | Query: {statement[:100]}...")
            constraint = getattr(getattr(e, "diag", None), "constraint_name", None) or str(e)
            raise IntegrityError(constraint, str(e)) from e
        except psycopg.errors.QueryCanceled as e:
            logger.error(f"{operation} timed out: {statement[:100]}...")
            raise TimeoutError(operation, self._timeout) from e
        except psycopg.OperationalError as e:
            logger.error(f"{operation} failed: {e} | Query: {statement[:100]}...")
            raise RepositoryError(f"{operation} failed: {e}", e) from e

    def fetch_all(self, statement: str) -> list[Row]:
        """
        Fetch all records.

        Raises:
            RepositoryError: If query execution fails
            TimeoutError: If the query or connection acquisition times out
        """
        with self._translate_errors("fetch_all", statement):
            with self.acquire_connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(statement)
                result = cur.fetchall()
                logger.debug(f"Fetch all query: {statement[:100]}... | Count: {len(result)}")
                return result

    def fetch_one(self, statement: str) -> Row | None:
        with self._translate_errors("fetch_one", statement):
            with self.acquire_connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                cur.execute(statement)
                result = cur.fetchone()
                logger.debug(f"Fetch one query: {statement[:100]}... | Found: {result is not None}")
                return result

    def fetch_scalar(self, statement: str, column: int = 0, row: int = 0) -> Any:
        """
        Fetch the value at (column, row) of the result.

        Returns:
            The value, or None when the result is smaller
        """
        with self._translate_errors("fetch_scalar", statement):
            with self.acquire_connection() as conn, conn.cursor() as cur:
                cur.execute(statement)
                rows = cur.fetchall()
                logger.debug(f"Fetch scalar query: {statement[:100]}... | Rows: {len(rows)}")
                if row < len(rows) and column < len(rows[row]):
                    return rows[row][column]
                return None

    def fetch_column(self, statement: str, column: int = 0) -> list[Any]:
        with self._translate_errors("fetch_column", statement):
            with self.acquire_connection() as conn, conn.cursor() as cur:
                cur.execute(statement)
                values = [record[column] for record in cur.fetchall() if column < len(record)]
                logger.debug(f"Fetch column query: {statement[:100]}... | Count: {len(values)}")
                return values

    def execute(self, statement: str) -> int:
        """
        Execute a statement.

        INSERT statements also refresh ``last_insert_id`` from their
        RETURNING row, or from ``lastval()``.

        Returns:
            Affected row count

        Raises:
            IntegrityError: If a constraint is violated
            RepositoryError: If execution fails
            TimeoutError: If the statement or connection acquisition times out
        """
        with self._translate_errors("execute", statement):
            with self.acquire_connection() as conn, conn.cursor() as cur:
                cur.execute(statement)
                rowcount = cur.rowcount
                if _is_insert(statement):
                    self.last_insert_id = self._capture_insert_id(conn, cur)
                logger.debug(f"Query executed: {statement[:100]}... | Rows: {rowcount}")
                return rowcount

    @staticmethod
    def _capture_insert_id(conn: Connection, cur: psycopg.Cursor) -> Any:
        if cur.description:
            row = cur.fetchone()
            return row[0] if row else None
        try:
            # Savepoint: a failing lastval() must not abort the insert.
            with conn.transaction():
                cur.execute("SELECT lastval()")
                row = cur.fetchone()
        except psycopg.errors.ObjectNotInPrerequisiteState:
            return None
        return row[0] if row else None

    def begin_transaction(self) -> None:
        """
        Begin a database transaction; later statements share its connection.

        Raises:
            TransactionError: If a transaction is active or cannot be started
        """
        if self.has_active_transaction:
            raise TransactionError("Transaction is already active")

        try:
            self._connection = self._pool.getconn(timeout=self._timeout)
            self._transaction = self._connection.transaction()
            self._transaction.__enter__()
            logger.debug("Transaction started")
        except (psycopg.OperationalError, PoolTimeout) as e:
            logger.error(f"Failed to start transaction: {e}")
            self._cleanup_transaction()
            raise TransactionError(f"Failed to start transaction: {e}") from e

    def commit_transaction(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionError: If commit fails or no active transaction
        """
        if not self.has_active_transaction:
            raise TransactionError("No active transaction to commit")

        try:
            self._transaction.__exit__(None, None, None)
            logger.debug("Transaction committed")
        except psycopg.OperationalError as e:
            logger.error(f"Failed to commit transaction: {e}")
            raise TransactionError(f"Failed to commit transaction: {e}") from e
        finally:
            self._cleanup_transaction()

    def rollback_transaction(self) -> None:
        """
        Rollback the current transaction.

        Raises:
            TransactionError: If rollback fails
        """
        if not self.has_active_transaction:
            logger.warning("No active transaction to rollback")
            return

        try:
            self._transaction.__exit__(psycopg.Rollback, psycopg.Rollback(), None)
            logger.debug("Transaction rolled back")
        except psycopg.OperationalError as e:
            logger.error(f"Failed to rollback transaction: {e}")
            raise TransactionError(f"Failed to rollback transaction: {e}") from e
        finally:
            self._cleanup_transaction()

    @contextmanager
    def transaction(self) -> Iterator["PostgreSQLDriver"]:
        """Run the block in a transaction, committing on success."""
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback_transaction()
            raise
        self.commit_transaction()

    def _cleanup_transaction(self) -> None:
        if self._connection is not None:
            try:
                self._pool.putconn(self._connection)
            except Exception as e:
                logger.warning(f"Failed to release connection: {e}")
            finally:
                self._connection = None

        self._transaction = None

    def health_check(self) -> bool:
        """
        Perform a health check on the database connection.

        Returns:
            True if database is healthy, False otherwise
        """
        try:
            with self.acquire_connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
                return True
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    def get_connection_info(self) -> dict[str, Any]:
        """Basic connection pool information."""
        return {
            "max_size": self._pool.max_size,
            "min_size": self._pool.min_size,
            "pool_status": "active" if not self._pool.closed else "closed",
            "table_prefix": self.table_prefix,
        }

    def __str__(self) -> str:
        pool_info = f"Pool(max_size={self._pool.max_size})"
        tx_info = "with active transaction" if self.has_active_transaction else "no transaction"
        return f"PostgreSQLDriver({pool_info}, {tx_info})"
