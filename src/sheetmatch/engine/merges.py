"""Merged-cell bookkeeping: shadow-cell detection and column shifting."""

from bisect import bisect_right
from collections import defaultdict
from typing import Sequence, TypeVar

from .errors import OverlappingMergeError
from .models import MergedRange, ValidationRange

RangeT = TypeVar("RangeT", MergedRange, ValidationRange)


def is_shadow_cell(
    row_index: int, col_index: int, merged_ranges: Sequence[MergedRange]
) -> bool:
    """
    Check whether a data cell is a non-primary member of a merged range.

    Args:
        row_index: 0-based data row (sheet row ``row_index + 1``)
        col_index: 0-based column, or -1 for a column that does not exist
        merged_ranges: Merged ranges of the sheet

    Returns:
        True if the cell lies inside a range but is not its top-left cell
    """
    if col_index == -1:
        return False

    sheet_row = row_index + 1
    for merged in merged_ranges:
        if merged.contains(sheet_row, col_index):
            return (sheet_row, col_index) != merged.primary
    return False


class MergeMask:
    """
    Shadow-cell lookup for one table's merged ranges.

    Ranges are bucketed by every column they cover and sorted by start row.
    Since the ranges never overlap, at most one range per column can contain
    a given row: the last one starting at or above it.
    """

    def __init__(self, merged_ranges: Sequence[MergedRange]):
        ensure_non_overlapping(merged_ranges)
        columns: dict[int, list[MergedRange]] = defaultdict(list)
        for merged in merged_ranges:
            for col in range(merged.start_col, merged.end_col + 1):
                columns[col].append(merged)

        self._columns: dict[int, tuple[list[int], list[MergedRange]]] = {}
        for col, ranges in columns.items():
            ranges.sort(key=lambda m: m.start_row)
            self._columns[col] = ([m.start_row for m in ranges], ranges)

    def is_shadow(self, row_index: int, col_index: int) -> bool:
        bucket = self._columns.get(col_index)
        if bucket is None:
            return False
        starts, ranges = bucket
        pos = bisect_right(starts, row_index + 1) - 1
        if pos < 0:
            return False
        return is_shadow_cell(row_index, col_index, ranges[pos:pos + 1])


def ensure_non_overlapping(merged_ranges: Sequence[MergedRange]) -> None:
    """Raise OverlappingMergeError if any two ranges share a cell."""
    ordered = sorted(merged_ranges, key=lambda m: (m.start_row, m.start_col))
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            if second.start_row > first.end_row:
                break
            if first.overlaps(second):
                raise OverlappingMergeError(
                    f"Merged ranges overlap: {_describe(first)} and {_describe(second)}"
                )


def shift_ranges(ranges: Sequence[RangeT], after_col: int) -> list[RangeT]:
    """
    Shift ranges right by one column for a column inserted after ``after_col``.

    Start and end bounds move independently: a range that begins at or
    before ``after_col`` but ends past it grows by one column.
    """
    shifted = []
    for rng in ranges:
        shifted.append(
            rng.model_copy(
                update={
                    "start_col": rng.start_col + 1 if rng.start_col > after_col else rng.start_col,
                    "end_col": rng.end_col + 1 if rng.end_col > after_col else rng.end_col,
                }
            )
        )
    return shifted


def _describe(merged: MergedRange) -> str:
    return (
        f"({merged.start_row},{merged.start_col})-({merged.end_row},{merged.end_col})"
    )
