"""Row-by-row reconciliation of table A against table B."""

from typing import Iterator, Optional, Union

from .errors import InvalidSelectionError
from .index import IndexMap, build_index, indexed_keys, values_equal
from .merges import MergeMask, ensure_non_overlapping
from .models import (
    AuditReport,
    CellValue,
    ColumnSelection,
    ExistingColumn,
    MismatchEntry,
    NewColumn,
    ReconcileMode,
    RowRange,
    Table,
    UpdateReport,
)
from .report import (
    DEFAULT_COLUMN_SUFFIX,
    NotFoundTracker,
    RowOutcome,
    assemble_audit,
    assemble_update,
    insert_column,
    unique_column_name,
)


def _is_blank(value: CellValue) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _validate(
    table_a: Table,
    table_b: Table,
    selection: ColumnSelection,
    row_range: Optional[RowRange],
) -> tuple[int, int]:
    """Check every precondition up front; returns the resolved row slice."""
    table_a.require_column(selection.key_a)
    table_b.require_column(selection.key_b)
    table_b.require_column(selection.value_b)

    target = selection.value_a
    if isinstance(target, ExistingColumn):
        table_a.require_column(target.name)
    elif target.adjacent_to != selection.key_a:
        raise InvalidSelectionError(
            f"New column must be created next to key column '{selection.key_a}', "
            f"not '{target.adjacent_to}'"
        )

    ensure_non_overlapping(table_a.merged_ranges)
    ensure_non_overlapping(table_b.merged_ranges)

    return (row_range or RowRange()).resolve(table_a.row_count)


def _source_index(table_b: Table, selection: ColumnSelection) -> tuple[IndexMap, NotFoundTracker]:
    mask_b = MergeMask(table_b.merged_ranges)
    index = build_index(table_b, selection.key_b, selection.value_b, mask_b.is_shadow)
    return index, NotFoundTracker(indexed_keys(index))


def _walk_update(
    layout: Table,
    key_col: int,
    target_col: int,
    index: IndexMap,
    bounds: tuple[int, int],
    skip_if_filled: bool,
) -> Iterator[RowOutcome]:
    mask = MergeMask(layout.merged_ranges)
    start, end = bounds

    for i, original in enumerate(layout.rows):
        row = list(original)
        if not start <= i < end:
            yield RowOutcome(row=row)
            continue
        if mask.is_shadow(i, key_col) or mask.is_shadow(i, target_col):
            yield RowOutcome(row=row)
            continue

        key = row[key_col]
        if key not in index:
            yield RowOutcome(row=row)
            continue

        incoming = index[key]
        current = row[target_col]
        if skip_if_filled and not _is_blank(current):
            yield RowOutcome(row=row, found_key=True, key=key)
            continue

        row[target_col] = incoming
        yield RowOutcome(
            row=row,
            found_key=True,
            key=key,
            wrote=not values_equal(current, incoming),
        )


def _walk_audit(
    table_a: Table,
    key_col: int,
    compare_col: int,
    index: IndexMap,
    bounds: tuple[int, int],
) -> Iterator[RowOutcome]:
    mask = MergeMask(table_a.merged_ranges)
    start, end = bounds

    for i in range(start, end):
        row = table_a.rows[i]
        if mask.is_shadow(i, key_col) or mask.is_shadow(i, compare_col):
            continue

        key = row[key_col]
        if key not in index:
            continue

        expected = index[key]
        actual = row[compare_col]
        if values_equal(actual, expected):
            yield RowOutcome(row=row, found_key=True, key=key, matched=True)
        else:
            yield RowOutcome(
                row=row,
                found_key=True,
                key=key,
                mismatch=MismatchEntry(
                    key=key,
                    a_value=actual,
                    b_value=expected,
                    a_row=table_a.row_as_dict(i),
                ),
            )


def reconcile_update(
    table_a: Table,
    table_b: Table,
    selection: ColumnSelection,
    row_range: Optional[RowRange] = None,
    skip_if_filled: bool = False,
    column_suffix: str = DEFAULT_COLUMN_SUFFIX,
) -> UpdateReport:
    """
    Copy table B's value column into table A wherever keys match.

    Args:
        table_a: Target table; left untouched, the result carries a new copy
        table_b: Source table
        selection: Key and value columns on both sides
        row_range: Optional 1-based inclusive bounds on table A's data rows
        skip_if_filled: Leave target cells that already hold data
        column_suffix: Suffix for the name of a newly created column

    Returns:
        UpdateReport with the write count, unmatched B keys and the new table

    Raises:
        ReconcileError: If a column, the row range or the merges are invalid
    """
    bounds = _validate(table_a, table_b, selection, row_range)
    index, not_found = _source_index(table_b, selection)

    if isinstance(selection.value_a, NewColumn):
        target = unique_column_name(selection.key_a, table_a.headers, column_suffix)
        layout = insert_column(table_a, selection.key_a, target)
    else:
        target = selection.value_a.name
        layout = table_a

    outcomes = _walk_update(
        layout,
        layout.column_index(selection.key_a),
        layout.column_index(target),
        index,
        bounds,
        skip_if_filled,
    )
    return assemble_update(
        layout,
        outcomes,
        not_found,
        target_column=target,
        created_column=selection.creates_column,
    )


def reconcile_audit(
    table_a: Table,
    table_b: Table,
    selection: ColumnSelection,
    row_range: Optional[RowRange] = None,
) -> AuditReport:
    """
    Compare a column of table A with table B's value column, key by key.

    Equality is strict: ``5`` and ``"5"`` are a mismatch.

    Raises:
        ReconcileError: If a column, the row range or the merges are invalid,
            or if the selection asks for a new column
    """
    if not isinstance(selection.value_a, ExistingColumn):
        raise InvalidSelectionError("Audit needs an existing column of table A to compare")

    bounds = _validate(table_a, table_b, selection, row_range)
    index, not_found = _source_index(table_b, selection)

    outcomes = _walk_audit(
        table_a,
        table_a.column_index(selection.key_a),
        table_a.column_index(selection.value_a.name),
        index,
        bounds,
    )
    return assemble_audit(
        table_a,
        outcomes,
        not_found,
        compared_column=selection.value_a.name,
        source_column=selection.value_b,
    )


def reconcile(
    mode: ReconcileMode,
    table_a: Table,
    table_b: Table,
    selection: ColumnSelection,
    row_range: Optional[RowRange] = None,
    skip_if_filled: bool = False,
    column_suffix: str = DEFAULT_COLUMN_SUFFIX,
) -> Union[UpdateReport, AuditReport]:
    """Dispatch to update or audit mode."""
    if ReconcileMode(mode) is ReconcileMode.AUDIT:
        return reconcile_audit(table_a, table_b, selection, row_range)
    return reconcile_update(
        table_a,
        table_b,
        selection,
        row_range=row_range,
        skip_if_filled=skip_if_filled,
        column_suffix=column_suffix,
    )
