"""Data models for the reconciliation engine."""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from .errors import ColumnNotFoundError, RowRangeError

CellValue = Union[str, int, float, bool, None]


class ReconcileMode(str, Enum):
    """Supported reconciliation modes."""

    UPDATE = "update"
    AUDIT = "audit"


class _CellRect(BaseModel):
    """Rectangle of cells in 0-based sheet coordinates.

    Sheet row 0 is the header row, so data row ``i`` sits on sheet row
    ``i + 1``. Columns are 0-based header positions.
    """

    start_row: int = Field(ge=0)
    start_col: int = Field(ge=0)
    end_row: int = Field(ge=0)
    end_col: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.start_row > self.end_row or self.start_col > self.end_col:
            raise ValueError(
                f"Range start ({self.start_row}, {self.start_col}) is after "
                f"end ({self.end_row}, {self.end_col})"
            )
        return self

    def contains(self, row: int, col: int) -> bool:
        return (
            self.start_row <= row <= self.end_row
            and self.start_col <= col <= self.end_col
        )

    def overlaps(self, other: "_CellRect") -> bool:
        return not (
            self.end_row < other.start_row
            or other.end_row < self.start_row
            or self.end_col < other.start_col
            or other.end_col < self.start_col
        )


class MergedRange(_CellRect):
    """A merged cell region. The top-left cell is the primary cell."""

    @property
    def primary(self) -> tuple[int, int]:
        return self.start_row, self.start_col


class ValidationRange(_CellRect):
    """A data-validation region; the rule itself is carried through untouched."""

    rule: dict[str, Any] = Field(default_factory=dict)


class Table(BaseModel):
    """A decoded sheet: unique headers plus rows aligned to them by position."""

    headers: list[str] = Field(default_factory=list)
    rows: list[list[CellValue]] = Field(default_factory=list)
    merged_ranges: list[MergedRange] = Field(default_factory=list)
    validation_ranges: list[ValidationRange] = Field(default_factory=list)
    name: str = ""

    _column_lookup: dict[str, int] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _normalize_rows(self):
        if len(set(self.headers)) != len(self.headers):
            dupes = sorted({h for h in self.headers if self.headers.count(h) > 1})
            raise ValueError(f"Duplicate headers: {dupes}")

        width = len(self.headers)
        for i, row in enumerate(self.rows):
            if len(row) > width:
                raise ValueError(
                    f"Row {i} has {len(row)} cells but only {width} headers"
                )
            if len(row) < width:
                row.extend([None] * (width - len(row)))
        return self

    def model_post_init(self, __context: Any) -> None:
        self._column_lookup = {header: i for i, header in enumerate(self.headers)}

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column_index(self, name: str) -> int:
        """Return the position of a header, or -1 when absent."""
        return self._column_lookup.get(name, -1)

    def require_column(self, name: str) -> int:
        index = self.column_index(name)
        if index < 0:
            raise ColumnNotFoundError(name, self.name or None)
        return index

    def row_as_dict(self, row_index: int) -> dict[str, CellValue]:
        return dict(zip(self.headers, self.rows[row_index]))

    def preview(self, limit: int = 5) -> list[dict[str, CellValue]]:
        """First ``limit`` rows keyed by header."""
        return [self.row_as_dict(i) for i in range(min(limit, self.row_count))]


class ExistingColumn(BaseModel):
    """Write to, or compare against, a column already present in table A."""

    kind: Literal["existing"] = "existing"
    name: str


class NewColumn(BaseModel):
    """Create a fresh column immediately after the given key column."""

    kind: Literal["new"] = "new"
    adjacent_to: str


TargetColumn = Annotated[Union[ExistingColumn, NewColumn], Field(discriminator="kind")]


class ColumnSelection(BaseModel):
    """The four columns driving a reconciliation."""

    key_a: str
    value_a: TargetColumn
    key_b: str
    value_b: str

    @classmethod
    def of(
        cls,
        key_a: str,
        value_a: Optional[str],
        key_b: str,
        value_b: str,
        create_new: bool = False,
    ) -> "ColumnSelection":
        """Build a selection from plain column names."""
        if create_new:
            target = NewColumn(adjacent_to=key_a)
        else:
            target = ExistingColumn(name=value_a or "")
        return cls(key_a=key_a, value_a=target, key_b=key_b, value_b=value_b)

    @property
    def creates_column(self) -> bool:
        return isinstance(self.value_a, NewColumn)


class RowRange(BaseModel):
    """Optional 1-based, inclusive bounds on the data rows of table A."""

    start: Optional[int] = None
    end: Optional[int] = None

    def resolve(self, row_count: int) -> tuple[int, int]:
        """Return ``(start_index, end_index)`` as a half-open 0-based slice."""
        if self.start is None and self.end is None:
            return 0, row_count

        start = 1 if self.start is None else self.start
        end = row_count if self.end is None else self.end
        if start < 1 or end > row_count or start > end:
            raise RowRangeError(
                f"Invalid row range {start}-{end}: start must be at least 1, "
                f"not after end, and end must not exceed {row_count}"
            )
        return start - 1, end


class MismatchEntry(BaseModel):
    """A table A row whose compared value disagrees with table B."""

    key: CellValue
    a_value: CellValue
    b_value: CellValue
    a_row: dict[str, CellValue]


class AuditReport(BaseModel):
    """Outcome of an audit run."""

    matches: int = 0
    mismatches: int = 0
    not_found_keys: list[CellValue] = Field(default_factory=list)
    mismatched_entries: list[MismatchEntry] = Field(default_factory=list)
    a_headers: list[str] = Field(default_factory=list)
    compared_column: str = ""
    source_column: str = ""

    @property
    def inspection_columns(self) -> list[str]:
        """Table A columns other than the compared one."""
        return [h for h in self.a_headers if h != self.compared_column]


class UpdateReport(BaseModel):
    """Outcome of an update run, including the rewritten table A."""

    writes: int = 0
    not_found_keys: list[CellValue] = Field(default_factory=list)
    updated_table: Table
    target_column: str
    created_column: bool = False
