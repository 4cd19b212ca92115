"""Local persistence for the tracker."""

from .local import InMemoryLocalStore, LocalRepository, LocalStore, SqlLocalStore

__all__ = ["InMemoryLocalStore", "LocalRepository", "LocalStore", "SqlLocalStore"]
