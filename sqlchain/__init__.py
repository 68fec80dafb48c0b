"""
sqlchain - Fluent SQL query builder with an active-record data model layer.

Example usage:
    from sqlchain import QueryBuilder, RecordingDriver

    driver = RecordingDriver(table_prefix="wp_")
    sql = (QueryBuilder(driver)
        .select("*")
        .from_table("posts")
        .where({"post_status": "publish"})
        .limit(10)
        .to_sql())
"""

from .application.config import ApplicationConfig, BuilderConfig, get_config, reset_config, set_config
from .domain.exceptions import (
    InvalidArgumentError,
    MissingBoundError,
    MissingTableError,
    QueryBuilderError,
    UnsupportedStatementError,
)
from .domain.value_objects.sql_value import SqlValue, ValueKind, raw
from .infrastructure.database import (
    BaseDriver,
    DatabaseConnection,
    PostgreSQLDriver,
    QueryBuilder,
    RecordingDriver,
    create_builder,
)
from .infrastructure.hooks import HookRegistry
from .infrastructure.repositories import DataModel, alias_getter, alias_setter

__version__ = "0.1.0"

__all__ = [
    # Builder
    "QueryBuilder",
    "create_builder",
    "HookRegistry",
    # Values
    "SqlValue",
    "ValueKind",
    "raw",
    # Drivers
    "BaseDriver",
    "RecordingDriver",
    "PostgreSQLDriver",
    "DatabaseConnection",
    # Models
    "DataModel",
    "alias_getter",
    "alias_setter",
    # Configuration
    "ApplicationConfig",
    "BuilderConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Errors
    "QueryBuilderError",
    "InvalidArgumentError",
    "MissingBoundError",
    "MissingTableError",
    "UnsupportedStatementError",
]
