"""
Repository implementations.
"""

from .data_model import DataModel, alias_getter, alias_setter, maybe_decode_json

__all__ = ["DataModel", "alias_getter", "alias_setter", "maybe_decode_json"]
