"""Precondition errors raised by the reconciliation engine."""

from typing import Optional


class ReconcileError(ValueError):
    """Base class for invalid reconciliation input."""


class ColumnNotFoundError(ReconcileError):
    """Raised when a column reference does not resolve to a header."""

    def __init__(self, column: str, table: Optional[str] = None):
        self.column = column
        self.table = table
        where = f" in table '{table}'" if table else ""
        super().__init__(f"Column '{column}' not found{where}")


class InvalidSelectionError(ReconcileError):
    """Raised when a column selection is internally inconsistent."""


class RowRangeError(ReconcileError):
    """Raised when a row range falls outside the table."""


class OverlappingMergeError(ReconcileError):
    """Raised when two merged ranges share a cell."""
