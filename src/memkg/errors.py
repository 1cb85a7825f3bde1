"""Error taxonomy surfaced to callers of the graph operations."""

from __future__ import annotations


class KGError(Exception):
    """Base class for memkg failures."""


class EntityNotFoundError(KGError, LookupError):
    """A strict operation referenced an entity name that does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Entity with name {name} not found")


class InvalidPatternError(KGError, ValueError):
    """A custom observation filter is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class StorageError(KGError):
    """Reading or writing the backing file failed (a missing file is not an error)."""
