"""Table reconciliation engine."""

from .errors import (
    ColumnNotFoundError,
    InvalidSelectionError,
    OverlappingMergeError,
    ReconcileError,
    RowRangeError,
)
from .index import IndexMap, build_index, indexed_keys, values_equal
from .merges import MergeMask, ensure_non_overlapping, is_shadow_cell, shift_ranges
from .models import (
    AuditReport,
    CellValue,
    ColumnSelection,
    ExistingColumn,
    MergedRange,
    MismatchEntry,
    NewColumn,
    ReconcileMode,
    RowRange,
    Table,
    UpdateReport,
    ValidationRange,
)
from .reconcile import reconcile, reconcile_audit, reconcile_update
from .report import insert_column, unique_column_name

__all__ = [
    "ColumnNotFoundError",
    "InvalidSelectionError",
    "OverlappingMergeError",
    "ReconcileError",
    "RowRangeError",
    "IndexMap",
    "build_index",
    "indexed_keys",
    "values_equal",
    "MergeMask",
    "ensure_non_overlapping",
    "is_shadow_cell",
    "shift_ranges",
    "AuditReport",
    "CellValue",
    "ColumnSelection",
    "ExistingColumn",
    "MergedRange",
    "MismatchEntry",
    "NewColumn",
    "ReconcileMode",
    "RowRange",
    "Table",
    "UpdateReport",
    "ValidationRange",
    "reconcile",
    "reconcile_audit",
    "reconcile_update",
    "insert_column",
    "unique_column_name",
]
