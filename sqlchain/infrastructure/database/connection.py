"""
Database Connection Management

Owns the psycopg connection pool and hands out drivers bound to it.
"""

# Standard library imports
import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

# Third-party imports
import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

# Local imports
from sqlchain.application.config import get_config
from sqlchain.application.interfaces.exceptions import ConnectionError
from sqlchain.infrastructure.config import DatabaseConfig
from sqlchain.infrastructure.database.adapter import PostgreSQLDriver

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Database connection manager.

    Manages a single psycopg connection pool and its lifecycle.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        """
        Initialize connection manager.

        Args:
            config: Database configuration
        """
        self.config = config
        self._pool: ConnectionPool | None = None
        self._is_closed = False

    @property
    def is_connected(self) -> bool:
        """Check if connection pool is active."""
        return self._pool is not None and not self._pool.closed

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    def connect(self) -> ConnectionPool:
        """
        Open the connection pool and verify it with a test query.

        Returns:
            psycopg connection pool

        Raises:
            ConnectionError: If the manager was closed or the pool cannot open
        """
        if self._is_closed:
            raise ConnectionError("Connection manager has been closed")

        if self.is_connected and self._pool is not None:
            return self._pool

        logger.info(
            f"Connecting to database: {self.config.host}:{self.config.port}/{self.config.database}"
        )

        try:
            self._pool = ConnectionPool(
                conninfo=self.config.build_dsn(),
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                max_idle=self.config.max_idle_time,
                max_lifetime=self.config.max_lifetime,
                timeout=self.config.command_timeout,
                open=False,
            )
            self._pool.open(wait=True, timeout=self.config.server_connection_timeout)

            with self._pool.connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        except (PoolTimeout, psycopg.OperationalError, OSError) as e:
            logger.error(f"Failed to connect to database: {e}")
            self._cleanup()
            raise ConnectionError(f"Failed to connect to database: {e}") from e

        logger.info(
            f"Database connected successfully. Pool size: {self.config.min_pool_size}-{self.config.max_pool_size}"
        )
        return self._pool

    def disconnect(self) -> None:
        """Close database connection pool."""
        if self._is_closed:
            return

        logger.info("Disconnecting from database...")
        self._cleanup()
        self._is_closed = True
        logger.info("Database disconnected")

    def _cleanup(self) -> None:
        if self._pool is not None and not self._pool.closed:
            self._pool.close()
        self._pool = None

    @contextmanager
    def acquire(self) -> Generator[psycopg.Connection, None, None]:
        """
        Acquire a connection from the pool.

        Yields:
            Database connection

        Raises:
            ConnectionError: If the pool is not open or no connection is available
        """
        if not self.is_connected or self._pool is None:
            raise ConnectionError("Database is not connected")

        try:
            with self._pool.connection() as connection:
                yield connection
        except PoolTimeout as e:
            raise ConnectionError(f"Failed to acquire connection: {e}") from e

    def create_driver(self, table_prefix: str | None = None) -> PostgreSQLDriver:
        """
        Create a driver bound to this pool, connecting first if needed.

        Args:
            table_prefix: Namespace prepended to qualified table names;
                defaults to the configured builder prefix
        """
        if table_prefix is None:
            table_prefix = get_config().builder.table_prefix
        return PostgreSQLDriver(self.connect(), table_prefix, timeout=self.config.command_timeout)

    def health_check(self) -> bool:
        """Run a test query; False when the pool is down or the query fails."""
        if not self.is_connected:
            return False
        try:
            with self.acquire() as conn, conn.cursor() as cur:
                cur.execute("SELECT 1")
                return cur.fetchone() is not None
        except (ConnectionError, psycopg.Error) as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    def get_pool_stats(self) -> dict[str, Any]:
        if self._pool is None:
            return {"status": "disconnected"}
        stats = dict(self._pool.get_stats())
        stats["status"] = "closed" if self._pool.closed else "active"
        return stats

    def __str__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return f"DatabaseConnection({self.config.host}:{self.config.port}, {status})"
