"""Report assembly and new-column layout for table A."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .index import key_token
from .merges import shift_ranges
from .models import (
    AuditReport,
    CellValue,
    MismatchEntry,
    Table,
    UpdateReport,
)

DEFAULT_COLUMN_SUFFIX = " (updated)"


@dataclass
class RowOutcome:
    """What the reconciler did with a single row of table A."""

    row: list[CellValue]
    found_key: bool = False
    key: CellValue = None
    wrote: bool = False
    matched: bool = False
    mismatch: Optional[MismatchEntry] = None


@dataclass
class _Tally:
    found: list[CellValue] = field(default_factory=list)
    writes: int = 0
    matches: int = 0
    mismatches: list[MismatchEntry] = field(default_factory=list)


class NotFoundTracker:
    """Tracks which table B keys were never matched by a table A row."""

    def __init__(self, keys: Iterable[CellValue]):
        self._keys = list(keys)
        self._found: set[tuple[str, CellValue]] = set()

    def mark_found(self, keys: Iterable[CellValue]) -> None:
        self._found.update(key_token(key) for key in keys)

    def remaining(self) -> list[CellValue]:
        return [key for key in self._keys if key_token(key) not in self._found]


def unique_column_name(
    base: str, headers: Iterable[str], suffix: str = DEFAULT_COLUMN_SUFFIX
) -> str:
    """Return ``"<base><suffix>"``, adding `` 1``, `` 2``... until unused."""
    existing = set(headers)
    candidate = f"{base}{suffix}"
    counter = 1
    while candidate in existing:
        candidate = f"{base}{suffix} {counter}"
        counter += 1
    return candidate


def insert_column(table: Table, after: str, name: str) -> Table:
    """Return a copy of ``table`` with an empty column placed right after ``after``."""
    after_col = table.require_column(after)
    position = after_col + 1

    headers = list(table.headers)
    headers.insert(position, name)

    rows = []
    for row in table.rows:
        new_row = list(row)
        new_row.insert(position, None)
        rows.append(new_row)

    return Table(
        headers=headers,
        rows=rows,
        merged_ranges=shift_ranges(table.merged_ranges, after_col),
        validation_ranges=shift_ranges(table.validation_ranges, after_col),
        name=table.name,
    )


def _tally(outcomes: Iterable[RowOutcome]) -> tuple[list[list[CellValue]], _Tally]:
    rows = []
    tally = _Tally()
    for outcome in outcomes:
        rows.append(outcome.row)
        if outcome.found_key:
            tally.found.append(outcome.key)
        if outcome.wrote:
            tally.writes += 1
        if outcome.matched:
            tally.matches += 1
        if outcome.mismatch is not None:
            tally.mismatches.append(outcome.mismatch)
    return rows, tally


def assemble_update(
    layout: Table,
    outcomes: Iterable[RowOutcome],
    not_found: NotFoundTracker,
    target_column: str,
    created_column: bool,
) -> UpdateReport:
    """Fold row outcomes into an UpdateReport carrying the rewritten table."""
    rows, tally = _tally(outcomes)
    not_found.mark_found(tally.found)

    updated = Table(
        headers=list(layout.headers),
        rows=rows,
        merged_ranges=list(layout.merged_ranges),
        validation_ranges=list(layout.validation_ranges),
        name=layout.name,
    )
    return UpdateReport(
        writes=tally.writes,
        not_found_keys=not_found.remaining(),
        updated_table=updated,
        target_column=target_column,
        created_column=created_column,
    )


def assemble_audit(
    table_a: Table,
    outcomes: Iterable[RowOutcome],
    not_found: NotFoundTracker,
    compared_column: str,
    source_column: str,
) -> AuditReport:
    """Fold row outcomes into an AuditReport."""
    _, tally = _tally(outcomes)
    not_found.mark_found(tally.found)

    return AuditReport(
        matches=tally.matches,
        mismatches=len(tally.mismatches),
        not_found_keys=not_found.remaining(),
        mismatched_entries=tally.mismatches,
        a_headers=list(table_a.headers),
        compared_column=compared_column,
        source_column=source_column,
    )

