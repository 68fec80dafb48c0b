"""
Database Infrastructure Module

Query building, statement rendering and the drivers that execute the
rendered SQL (in memory, or on PostgreSQL through psycopg 3).
"""

from .adapter import PostgreSQLDriver
from .condition_compiler import ConditionCompiler
from .connection import DatabaseConnection
from .drivers import BaseDriver, RecordingDriver
from .query_builder import QueryBuilder, create_builder
from .renderer import Operation, StatementRenderer

__all__ = [
    "QueryBuilder",
    "create_builder",
    "ConditionCompiler",
    "StatementRenderer",
    "Operation",
    "BaseDriver",
    "RecordingDriver",
    "PostgreSQLDriver",
    "DatabaseConnection",
]
