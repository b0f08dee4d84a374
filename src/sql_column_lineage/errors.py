"""Exceptions raised by sql_column_lineage."""

from __future__ import annotations


class LineageError(Exception):
    """Base class for lineage resolution failures."""


class UnsupportedTransformationError(LineageError):
    """Raised when two transformations cannot be combined.

    Only DIRECT transformations can be merged; INDIRECT propagation
    (JOIN, FILTER, GROUP_BY, SORT, WINDOW, CONDITION) is not implemented.
    """


class RecursionDepthExceededError(LineageError):
    """Raised when derived tables are nested deeper than the configured limit."""

    def __init__(self, depth: int, limit: int) -> None:
        super().__init__(
            f"Derived table nesting depth {depth} exceeds the limit of {limit}"
        )
        self.depth = depth
        self.limit = limit


class UnsupportedStatementError(LineageError):
    """Raised when SQL text is not exactly one SELECT statement."""


class SchemaError(LineageError, ValueError):
    """Raised for malformed schema definitions."""
