"""ORM models for local persistence."""

from .local_state import LocalStateEntry

__all__ = ["LocalStateEntry"]
