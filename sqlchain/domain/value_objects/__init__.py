"""
Value Objects - Immutable SQL fragments and tagged values.
"""

from .condition import Condition, Join, JoinType, Joint, chain_conditions
from .sql_value import SqlValue, ValueKind, is_null_literal, is_numeric, raw

__all__ = [
    "Condition",
    "Join",
    "JoinType",
    "Joint",
    "chain_conditions",
    "SqlValue",
    "ValueKind",
    "is_null_literal",
    "is_numeric",
    "raw",
]
