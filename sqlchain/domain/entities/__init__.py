"""Domain entities."""

from .builder_state import BuilderState

__all__ = ["BuilderState"]
